"""Generation job orchestration using LangChain and Google Gemini."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from config.settings import settings
from config.store_client import StoreClient
from content.content_validator import ContentValidator, JobKind
from content.exceptions import (
    NotFoundError,
    PersistenceItemError,
    InvalidJobRequest,
    TransportError,
    ValidationError,
)
from content.idempotency import IdempotencyGuard
from content.prompt_templates import (
    build_course_messages,
    build_quiz_messages,
    build_topic_extraction_messages,
)
from content.topics import chunk_into_partitions, course_domain, topic_label
from models.schemas import (
    CourseModule,
    JobStatus,
    QuizQuestion,
    TopicPartition,
    UploadSession,
)

logger = logging.getLogger(__name__)


@dataclass
class JobOutcome:
    """What a job's validate-guard-persist continuation settled on."""

    status: JobStatus
    written: int = 0
    failed: int = 0
    skipped: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GenerationJob:
    """One prepared job: prompt messages plus the continuation run after the stream drains."""

    kind: JobKind
    identifiers: Dict[str, Any]
    messages: List[BaseMessage]
    finalize: Callable[[str], Awaitable[JobOutcome]]

    @property
    def key(self) -> str:
        return job_key(self.kind, **self.identifiers)


def job_key(kind: JobKind, collection_id: int, partition_index: Optional[int] = None) -> str:
    if partition_index is None:
        return f"{kind.value}:{collection_id}"
    return f"{kind.value}:{collection_id}:{partition_index}"


class ContentGenerator:
    """
    Orchestrate topic extraction, quiz generation and course generation.

    Each job method returns a GenerationJob; the streaming transport drives the
    model stream and invokes the job's finalize continuation once it drains.
    """

    def __init__(
        self,
        store: StoreClient,
        llm: Optional[BaseChatModel] = None,
        validator: Optional[ContentValidator] = None,
    ):
        self.store = store
        self.llm = llm or ChatGoogleGenerativeAI(
            model=settings.GENERATION_MODEL,
            temperature=settings.GENERATION_TEMPERATURE,
            google_api_key=settings.GOOGLE_API_KEY
        )
        self.validator = validator or ContentValidator()
        self.guard = IdempotencyGuard(store)
        logger.info(f"ContentGenerator initialized with {settings.GENERATION_MODEL}")

    async def stream_model(self, messages: List[BaseMessage]) -> AsyncIterator[str]:
        """Invoke the model once and yield its text output incrementally."""
        try:
            async for chunk in self.llm.astream(messages):
                text = self._chunk_text(chunk.content)
                if text:
                    yield text
        except Exception as e:
            logger.error(f"Model stream failed: {e}")
            raise TransportError(f"Generative model call failed: {e}") from e

    # ------------------------------------------------------------------
    # Topic extraction
    # ------------------------------------------------------------------

    def topic_extraction_job(
        self,
        session: UploadSession,
        document: bytes,
        mime_type: str = "application/pdf",
    ) -> GenerationJob:
        messages = build_topic_extraction_messages(session.learner_age, document, mime_type)

        async def finalize(text: str) -> JobOutcome:
            topics = self._require(self.validator.validate_text(text, JobKind.TOPIC_EXTRACTION)).topics
            groups = chunk_into_partitions(topics)

            partitions = [
                TopicPartition(
                    collection_id=session.collection_id,
                    partition_index=index,
                    topic1=group[0],
                    topic2=group[1],
                    topic3=group[2],
                    topic4=group[3],
                    topic5=group[4],
                    age=session.learner_age,
                )
                for index, group in enumerate(groups, start=1)
            ]
            written, failed = await self._persist_batch([
                (f"topic partition {p.partition_index}", self.store.create_topic_partition(p))
                for p in partitions
            ])

            logger.info(
                f"Extracted {len(topics)} topics into {len(partitions)} partitions "
                f"for collection {session.collection_id}"
            )
            return JobOutcome(
                status=JobStatus.COMPLETE,
                written=written,
                failed=failed,
                extra={"last_partition": len(partitions)},
            )

        return GenerationJob(
            kind=JobKind.TOPIC_EXTRACTION,
            identifiers={"collection_id": session.collection_id},
            messages=messages,
            finalize=finalize,
        )

    # ------------------------------------------------------------------
    # Quiz generation
    # ------------------------------------------------------------------

    async def quiz_generation_job(self, collection_id: int, partition_index: int) -> GenerationJob:
        partition = await self.store.get_topic_partition(collection_id, partition_index)
        if partition is None:
            raise NotFoundError(
                f"Topic partition {partition_index} not found for collection {collection_id}",
                context={"collection_id": collection_id, "partition_index": partition_index},
            )

        messages = build_quiz_messages(partition.topics)

        async def finalize(text: str) -> JobOutcome:
            drafts = self._require(self.validator.validate_text(text, JobKind.QUIZ)).questions

            questions = [
                QuizQuestion(
                    collection_id=collection_id,
                    partition_index=partition_index,
                    topic=draft.topic,
                    question=draft.question,
                    option_a=draft.option_a,
                    option_b=draft.option_b,
                    option_c=draft.option_c,
                    option_d=draft.option_d,
                    correct_answer=draft.correct_answer,
                    user_answer="",
                )
                for draft in drafts
            ]
            written, failed = await self._persist_batch([
                (f"quiz question for topic {q.topic}", self.store.create_quiz_question(q))
                for q in questions
            ])
            logger.info(
                f"Generated {len(questions)} questions for collection {collection_id} "
                f"partition {partition_index}"
            )
            return JobOutcome(status=JobStatus.COMPLETE, written=written, failed=failed)

        return GenerationJob(
            kind=JobKind.QUIZ,
            identifiers={"collection_id": collection_id, "partition_index": partition_index},
            messages=messages,
            finalize=finalize,
        )

    # ------------------------------------------------------------------
    # Course generation
    # ------------------------------------------------------------------

    def course_generation_job(
        self,
        collection_id: int,
        weak_topics: List[str],
        strong_topics: List[str],
        interests: List[str],
    ) -> GenerationJob:
        if not weak_topics and not strong_topics:
            raise InvalidJobRequest(
                "No topics provided for course generation",
                context={"collection_id": collection_id},
            )

        domain = course_domain((weak_topics or strong_topics)[0])
        messages = build_course_messages(domain, weak_topics, strong_topics, interests)

        async def finalize(text: str) -> JobOutcome:
            course = self._require(self.validator.validate_text(text, JobKind.COURSE))

            modules = (
                self._requested_modules(course.weak_modules, weak_topics, "weak")
                + self._requested_modules(course.strong_modules, strong_topics, "strong")
            )

            if await self.guard.check_course(collection_id):
                return JobOutcome(status=JobStatus.COURSE_GENERATION_COMPLETE, skipped=True)

            created_at = int(time.time())
            records = [
                CourseModule(
                    collection_id=collection_id,
                    course_title=course.course_title,
                    topic=module.topic,
                    description=module.description,
                    learning_objectives=module.learning_objectives,
                    recommended_resources=module.recommended_resources,
                    created_at=created_at,
                )
                for module in modules
            ]
            written, failed = await self._persist_batch([
                (f"course module for topic {m.topic}", self.store.create_course_module(m))
                for m in records
            ])
            logger.info(f"Course '{course.course_title}' for collection {collection_id}: {written} modules saved")
            return JobOutcome(status=JobStatus.COURSE_GENERATION_COMPLETE, written=written, failed=failed)

        return GenerationJob(
            kind=JobKind.COURSE,
            identifiers={"collection_id": collection_id},
            messages=messages,
            finalize=finalize,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require(result):
        if not result:
            raise ValidationError("Model output failed validation", issues=result.issues)
        return result.value

    @staticmethod
    def _requested_modules(modules: List[Any], requested: List[str], category: str) -> List[Any]:
        """Keep modules whose topic names one of the requested topics, exactly or by label."""
        labels = {topic_label(t).lower() for t in requested}
        kept = [m for m in modules if m.topic in requested or topic_label(m.topic).lower() in labels]
        if len(kept) < len(modules):
            logger.warning(f"Discarding {len(modules) - len(kept)} {category} modules for unrequested topics")
        return kept

    async def _persist_batch(self, writes: List[Tuple[str, Awaitable[Any]]]) -> Tuple[int, int]:
        """Issue every write concurrently; a failed item never stops the others."""
        if not writes:
            return 0, 0

        labels = [label for label, _ in writes]
        results = await asyncio.gather(*(write for _, write in writes), return_exceptions=True)

        failed = 0
        for label, result in zip(labels, results):
            if isinstance(result, Exception):
                failed += 1
                error = PersistenceItemError(label, result)
                logger.error(error.message)
        return len(writes) - failed, failed

    @staticmethod
    def _chunk_text(content: Any) -> str:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = []
            for part in content:
                if isinstance(part, str):
                    parts.append(part)
                elif isinstance(part, dict) and part.get("type") == "text":
                    parts.append(part.get("text", ""))
            return "".join(parts)
        return ""
