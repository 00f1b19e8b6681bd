"""
Integration Tests for the HTTP API

Exercises every router through FastAPI's TestClient with the store, job
tracker and content generator replaced by in-memory fakes.
"""

import asyncio
import base64
import json

import pytest
from fastapi.responses import StreamingResponse
from fastapi.testclient import TestClient

from conftest import InMemoryStore, ScriptedLLM, course_output, make_partition, make_question, quiz_output
from api.dependencies import get_content_generator, get_job_tracker, get_store
from api.generation import generate_quiz
from content.generator import ContentGenerator
from content.exceptions import NotFoundError, QuizAlreadyExistsError
from content.streaming import StreamFraming, extract_trailing_record
from main import app
from models.schemas import QuizGenerationRequest
from services.status_service import StatusService

PDF = base64.b64encode(b"%PDF-1.4 syllabus").decode("ascii")


@pytest.fixture
def generator(store):
    return ContentGenerator(store, llm=ScriptedLLM(""))


@pytest.fixture
def client(store, tracker, generator):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_job_tracker] = lambda: tracker
    app.dependency_overrides[get_content_generator] = lambda: generator
    yield TestClient(app)
    app.dependency_overrides.clear()


def seed_quiz(store, collection_id=7, partition_index=1, answers=None):
    answers = answers or [""] * 5
    for i, answer in enumerate(answers):
        store.quiz.append(make_question(
            collection_id, partition_index, f"Topic {partition_index}.{i} (course-name-is) Mathematics",
            correct="a", answer=answer, question_id=f"q{partition_index}{i}",
        ))


class TestTopicsGenerator:

    def test_latest_upload_id(self, client, store):
        store.topics.append(make_partition(7, 1))
        response = client.get("/api/get-latest-uploadid")
        assert response.status_code == 200
        assert response.json() == {"latest_upload_id": 7}

    def test_new_upload_gets_next_id(self, client, store, generator):
        store.topics.append(make_partition(7, 1))
        topics = [f"Topic {i} (course-name-is) Biology" for i in range(11)]
        generator.llm = ScriptedLLM(json.dumps({"topics": topics}))

        response = client.post("/api/topics-generator", json={"files": [{"data": PDF}], "age": 12})

        assert response.status_code == 200
        record = extract_trailing_record(response.text)
        assert record["status"] == "complete"
        assert record["collection_id"] == 8
        assert record["last_partition"] == 2
        assert record["composite_id"] == 82
        assert len([p for p in store.topics if p.collection_id == 8]) == 2

    def test_invalid_base64(self, client):
        response = client.post("/api/topics-generator", json={"files": [{"data": "not base64!!"}]})
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_REQUEST"

    def test_files_required(self, client):
        response = client.post("/api/topics-generator", json={"files": []})
        assert response.status_code == 422

    def test_model_unavailable(self, client, generator):
        generator.llm = ScriptedLLM("anything", fail_after=0)
        response = client.post("/api/topics-generator", json={"files": [{"data": PDF}], "uploadid": 3})
        assert response.status_code == 502
        assert response.json()["error_code"] == "MODEL_TRANSPORT_FAILED"


class TestQuizGenerator:

    def test_unknown_partition(self, client):
        response = client.post("/api/quiz-generator", json={"uploadid": 7, "part": 1})
        assert response.status_code == 404
        assert response.json()["error_code"] == "TOPIC_PARTITION_NOT_FOUND"

    def test_part_out_of_range(self, client):
        response = client.post("/api/quiz-generator", json={"uploadid": 7, "part": 10})
        assert response.status_code == 422

    def test_generates_quiz(self, client, store, generator):
        partition = make_partition(7, 1)
        store.topics.append(partition)
        generator.llm = ScriptedLLM(quiz_output(partition.topics))

        response = client.post("/api/quiz-generator", json={"uploadid": 7, "part": 1})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        record = extract_trailing_record(response.text)
        assert record == {"collection_id": 7, "partition_index": 1, "status": "complete", "written": 5, "failed": 0}
        assert len(store.quiz) == 5

    def test_ndjson_framing(self, client, store, generator):
        partition = make_partition(7, 1)
        store.topics.append(partition)
        generator.llm = ScriptedLLM(quiz_output(partition.topics))

        response = client.post("/api/quiz-generator?framing=ndjson", json={"uploadid": 7, "part": 1})

        assert response.headers["content-type"].startswith("application/x-ndjson")
        lines = [json.loads(line) for line in response.text.splitlines()]
        assert lines[-1]["type"] == "completion"
        assert lines[-1]["written"] == 5

    def test_existing_quiz_conflict(self, client, store):
        store.topics.append(make_partition(7, 1))
        seed_quiz(store)

        response = client.post("/api/quiz-generator", json={"uploadid": 7, "part": 1})
        assert response.status_code == 409
        assert response.json()["error_code"] == "QUIZ_ALREADY_EXISTS"

    def test_invalid_output_reported_in_record(self, client, store, generator):
        partition = make_partition(7, 1)
        store.topics.append(partition)
        generator.llm = ScriptedLLM(quiz_output(partition.topics, correct="d"))

        response = client.post("/api/quiz-generator", json={"uploadid": 7, "part": 1})

        assert response.status_code == 200
        record = extract_trailing_record(response.text)
        assert record["status"] == "error"
        assert record["issues"]
        assert store.quiz == []


class SlowPartitionStore(InMemoryStore):
    async def get_topic_partition(self, collection_id, partition_index):
        await asyncio.sleep(0.01)
        return await super().get_topic_partition(collection_id, partition_index)


class TestQuizGeneratorConcurrency:

    @pytest.mark.asyncio
    async def test_simultaneous_triggers_generate_once(self, tracker):
        store = SlowPartitionStore()
        partition = make_partition(7, 1)
        store.topics.append(partition)
        generator = ContentGenerator(store, llm=ScriptedLLM(quiz_output(partition.topics)))
        status = StatusService(store, tracker)
        request = QuizGenerationRequest(uploadid=7, part=1)

        results = await asyncio.gather(
            generate_quiz(request, StreamFraming.TEXT, generator, tracker, status),
            generate_quiz(request, StreamFraming.TEXT, generator, tracker, status),
            return_exceptions=True,
        )

        responses = [r for r in results if isinstance(r, StreamingResponse)]
        conflicts = [r for r in results if isinstance(r, QuizAlreadyExistsError)]
        assert len(responses) == 1
        assert len(conflicts) == 1
        body = "".join([piece async for piece in responses[0].body_iterator])
        assert extract_trailing_record(body)["written"] == 5
        assert len(store.quiz) == 5
        assert len(generator.llm.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_partition_releases_claim(self, store, tracker):
        generator = ContentGenerator(store, llm=ScriptedLLM(""))
        status = StatusService(store, tracker)
        request = QuizGenerationRequest(uploadid=7, part=1)

        with pytest.raises(NotFoundError):
            await generate_quiz(request, StreamFraming.TEXT, generator, tracker, status)

        assert not tracker.is_running("quiz:7:1")
        assert generator.llm.calls == []


class TestCourseGenerator:

    def test_requires_topics(self, client):
        response = client.post("/api/generate-course", json={"uploadid": 7, "interests": ["chess"]})
        assert response.status_code == 400

    def test_generates_once(self, client, store, generator):
        weak = ["Fractions (course-name-is) Mathematics"]
        generator.llm = ScriptedLLM(course_output(weak, []))
        body = {"uploadid": 7, "weakTopics": weak, "strongTopics": [], "interests": ["chess", " "]}

        first = extract_trailing_record(client.post("/api/generate-course", json=body).text)
        second = extract_trailing_record(client.post("/api/generate-course", json=body).text)

        assert first["status"] == "course-generation-complete"
        assert first["written"] == 1
        assert second["skipped"] is True
        assert len(store.courses) == 1
        assert "User Interests: chess" in generator.llm.calls[0][-1].content

        course = client.get("/api/courses/7").json()
        assert course["course_title"] == "Mathematics Boost"
        assert course["modules"][0]["uploadid"] == 7


class TestQuizQueries:

    def test_quiz_not_found(self, client):
        response = client.get("/api/quizzes/71")
        assert response.status_code == 404
        assert response.json()["error_code"] == "QUIZ_NOT_FOUND"

    def test_bad_identifier(self, client):
        response = client.get("/api/quizzes/abc")
        assert response.status_code == 400
        assert response.json()["error_code"] == "IDENTIFIER_OUT_OF_RANGE"

    def test_unanswered_quiz_hides_answers(self, client, store):
        seed_quiz(store)
        data = client.get("/api/quizzes/71").json()

        assert data["read_only"] is False
        assert data["score"] is None
        assert data["total"] == 5
        assert data["questions"][0]["correct_answer"] is None
        assert data["questions"][0]["options"]["d"] == "I don't know"

    def test_submit_then_locked(self, client, store):
        seed_quiz(store)
        answers = {"q10": "a", "q11": "a", "q12": "b", "q13": "d", "q14": "a"}

        response = client.post("/api/quizzes/71/answers", json={"answers": answers})
        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 3
        assert sorted(data["updated"]) == sorted(answers)
        assert data["failed"] == []

        view = client.get("/api/quizzes/71").json()
        assert view["read_only"] is True
        assert view["score"] == 3
        assert view["questions"][0]["correct_answer"] == "a"

        again = client.post("/api/quizzes/71/answers", json={"answers": {"q10": "b"}})
        assert again.status_code == 409
        assert again.json()["error_code"] == "ANSWERS_LOCKED"

    def test_partial_write_failure(self, client, store):
        seed_quiz(store)
        store.reject_items.add("q11")

        data = client.post("/api/quizzes/71/answers", json={"answers": {"q10": "a", "q11": "a"}}).json()

        assert data["updated"] == ["q10"]
        assert data["failed"] == ["q11"]
        assert data["score"] == 1

    def test_unknown_question_id(self, client, store):
        seed_quiz(store)
        response = client.post("/api/quizzes/71/answers", json={"answers": {"zzz": "a"}})
        assert response.status_code == 400

    def test_generation_status(self, client, store):
        assert client.get("/api/quizzes/71/status").json() == {"quiz_id": 71, "generated": False, "taken": False}
        seed_quiz(store, answers=["a", "", "", "", ""])
        assert client.get("/api/quizzes/71/status?wait=1").json() == {"quiz_id": 71, "generated": True, "taken": True}

    def test_collection_overview(self, client, store):
        store.topics.extend([make_partition(7, 1), make_partition(7, 2)])
        seed_quiz(store, partition_index=1, answers=["a", "b", "", "", ""])

        data = client.get("/api/collections/72").json()

        assert data["collection_id"] == 7
        assert data["last_partition"] == 2
        assert [p["quiz_id"] for p in data["partitions"]] == [71, 72]
        assert data["partitions"][1]["generated"] is False
        assert data["all_completed"] is False


class TestAnalysis:

    def test_no_answers(self, client, store):
        seed_quiz(store)
        response = client.get("/api/analysis/7")
        assert response.status_code == 404
        assert response.json()["error_code"] == "ANALYSIS_NOT_FOUND"

    def test_weak_and_strong_topics(self, client, store):
        seed_quiz(store, answers=["a", "b", "a", "d", "a"])
        seed_quiz(store, partition_index=2)

        data = client.get("/api/analysis/7").json()

        assert data["total"] == 5
        assert data["correct"] == 3
        assert data["score"] == 60.0
        assert data["weak_topics"] == [
            "Topic 1.1 (course-name-is) Mathematics",
            "Topic 1.3 (course-name-is) Mathematics",
        ]
        assert len(data["strong_topics"]) == 3
        assert [p["partition_index"] for p in data["partitions"]] == [1]


class TestHealth:

    def test_store_reachable_redis_down(self, client):
        data = client.get("/health").json()
        assert data["services"]["store"] == "connected"
        assert data["services"]["redis"] == "disconnected"
        assert data["status"] == "degraded"

    def test_store_unreachable(self, client, store):
        store.unavailable.add("ping")
        data = client.get("/health").json()
        assert data["services"]["store"].startswith("disconnected")
