"""Shared fixtures: an in-memory resource store and a scripted streaming model."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import json
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest

from config.redis_client import RedisClient
from content.exceptions import UpstreamUnavailable
from models.schemas import CourseModule, QuizQuestion, TopicPartition
from services.job_tracker import JobTracker


class InMemoryStore:
    """Same async surface as StoreClient, backed by lists."""

    def __init__(self):
        self.topics: List[TopicPartition] = []
        self.quiz: List[QuizQuestion] = []
        self.courses: List[CourseModule] = []
        self.unavailable = set()
        self.reject_items = set()
        self._next_id = 1

    def _check(self, operation: str):
        if operation in self.unavailable:
            raise UpstreamUnavailable(f"{operation} unavailable")

    def _assign_id(self, record):
        record = record.model_copy(update={"id": str(self._next_id)})
        self._next_id += 1
        return record

    async def list_topic_partitions(self, collection_id: Optional[int] = None) -> List[TopicPartition]:
        self._check("list_topic_partitions")
        found = [p for p in self.topics if collection_id is None or p.collection_id == collection_id]
        return sorted(found, key=lambda p: p.partition_index)

    async def get_topic_partition(self, collection_id: int, partition_index: int) -> Optional[TopicPartition]:
        self._check("get_topic_partition")
        for p in self.topics:
            if p.collection_id == collection_id and p.partition_index == partition_index:
                return p
        return None

    async def create_topic_partition(self, partition: TopicPartition) -> TopicPartition:
        self._check("create_topic_partition")
        partition = self._assign_id(partition)
        self.topics.append(partition)
        return partition

    async def latest_collection_id(self) -> int:
        self._check("latest_collection_id")
        return max((p.collection_id for p in self.topics), default=0)

    async def list_quiz_questions(self, collection_id: int, partition_index: Optional[int] = None) -> List[QuizQuestion]:
        self._check("list_quiz_questions")
        return [
            q for q in self.quiz
            if q.collection_id == collection_id
            and (partition_index is None or q.partition_index == partition_index)
        ]

    async def create_quiz_question(self, question: QuizQuestion) -> QuizQuestion:
        self._check("create_quiz_question")
        if question.topic in self.reject_items:
            raise UpstreamUnavailable(f"rejected {question.topic}")
        question = self._assign_id(question)
        self.quiz.append(question)
        return question

    async def update_user_answer(self, question_id: str, answer: str) -> QuizQuestion:
        self._check("update_user_answer")
        if question_id in self.reject_items:
            raise UpstreamUnavailable(f"rejected {question_id}")
        for i, q in enumerate(self.quiz):
            if q.id == question_id:
                self.quiz[i] = q.model_copy(update={"user_answer": answer})
                return self.quiz[i]
        raise UpstreamUnavailable(f"question {question_id} not found")

    async def list_course_modules(self, collection_id: int) -> List[CourseModule]:
        self._check("list_course_modules")
        return [m for m in self.courses if m.collection_id == collection_id]

    async def create_course_module(self, module: CourseModule) -> CourseModule:
        self._check("create_course_module")
        module = self._assign_id(module)
        self.courses.append(module)
        return module

    async def ping(self) -> None:
        self._check("ping")


class ScriptedLLM:
    """Streams a fixed response in chunks, optionally failing or stalling."""

    def __init__(self, text: str = "", chunk_size: int = 40, fail_after: Optional[int] = None, delay: float = 0.0):
        self.text = text
        self.chunk_size = chunk_size
        self.fail_after = fail_after
        self.delay = delay
        self.calls = []

    async def astream(self, messages):
        self.calls.append(messages)
        chunks = [self.text[i:i + self.chunk_size] for i in range(0, len(self.text), self.chunk_size)]
        for index, chunk in enumerate(chunks):
            if self.fail_after is not None and index >= self.fail_after:
                raise RuntimeError("model connection reset")
            if self.delay:
                await asyncio.sleep(self.delay)
            yield SimpleNamespace(content=chunk)
        if self.fail_after is not None and self.fail_after >= len(chunks):
            raise RuntimeError("model connection reset")


def make_partition(collection_id: int, partition_index: int, domain: str = "Mathematics") -> TopicPartition:
    return TopicPartition(
        collection_id=collection_id,
        partition_index=partition_index,
        **{
            f"topic{i}": f"Topic {partition_index}.{i} (course-name-is) {domain}"
            for i in range(1, 6)
        },
        age=16,
    )


def make_question(
    collection_id: int,
    partition_index: int,
    topic: str,
    correct: str = "a",
    answer: str = "",
    question_id: Optional[str] = None,
) -> QuizQuestion:
    return QuizQuestion(
        id=question_id,
        collection_id=collection_id,
        partition_index=partition_index,
        topic=topic,
        question=f"What is {topic}?",
        option_a="First",
        option_b="Second",
        option_c="Third",
        correct_answer=correct,
        user_answer=answer,
    )


def quiz_output(topics: List[str], correct: str = "b") -> str:
    return json.dumps({
        "questions": [
            {
                "question": f"Which statement about {topic} is true?",
                "topic": topic,
                "option_a": "Alpha",
                "option_b": "Beta",
                "option_c": "Gamma",
                "option_d": "Delta",
                "correct_answer": correct,
            }
            for topic in topics
        ]
    })


def course_output(weak: List[str], strong: List[str], title: str = "Mathematics Boost") -> str:
    def module(topic):
        return {
            "topic": topic,
            "description": f"A focused module on {topic}.",
            "learning_objectives": ["Solve a real-world problem"],
            "recommended_resources": ["https://youtube.com/watch?v=x", "Book by Author", "Article"],
        }

    return json.dumps({
        "course_title": title,
        "weak_modules": [module(t) for t in weak],
        "strong_modules": [module(t) for t in strong],
    })


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def tracker():
    """Tracker with Redis left disconnected, so broadcasts are no-ops."""
    return JobTracker(redis=RedisClient())
