import httpx
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, List, Optional, Type, TypeVar
import logging

from config.settings import settings
from content.exceptions import UpstreamUnavailable
from models.schemas import TopicPartition, QuizQuestion, CourseModule

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class StoreClient:
    """REST resource store client: equality-filtered reads and per-record writes"""

    def __init__(
        self,
        topics_url: str = None,
        quiz_url: str = None,
        course_url: str = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.topics_url = (topics_url or settings.TOPICS_STORE_URL).rstrip("/")
        self.quiz_url = (quiz_url or settings.QUIZ_STORE_URL).rstrip("/")
        self.course_url = (course_url or settings.COURSE_STORE_URL).rstrip("/")
        self.http_client = http_client

    async def connect(self):
        """Open the shared HTTP connection pool"""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                timeout=settings.STORE_REQUEST_TIMEOUT,
                headers={"Cache-Control": "no-store"},
            )
        logger.info("✅ Store client initialized")

    async def disconnect(self):
        """Close the HTTP connection pool"""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
        logger.info("🔌 Store client closed")

    async def _request(self, method: str, url: str, *, empty_on_404: bool = False, **kwargs) -> Any:
        if self.http_client is None:
            await self.connect()
        try:
            response = await self.http_client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(
                f"Store request {method} {url} failed: {e}",
                context={"url": url, "method": method},
            ) from e

        # filtered list endpoints answer 404 when nothing matches
        if empty_on_404 and response.status_code == 404:
            return []

        if response.status_code >= 400:
            raise UpstreamUnavailable(
                f"Store request {method} {url} returned {response.status_code}",
                context={"url": url, "method": method, "status_code": response.status_code},
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Store response from {url} is not JSON",
                context={"url": url, "method": method},
            ) from e

    async def _list(
        self,
        url: str,
        model: Type[RecordT],
        filters: Dict[str, Any],
    ) -> List[RecordT]:
        raw = await self._request("GET", url, params=filters, empty_on_404=True)
        if not isinstance(raw, list):
            logger.warning(f"Store list at {url} returned {type(raw).__name__}, expected list")
            return []

        records = []
        for item in raw:
            # server-side filters may match loosely; re-apply equality
            if any(str(item.get(key)) != str(value) for key, value in filters.items()):
                continue
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed {model.__name__} record {item.get('id')}: {e}")
        return records

    async def _create(self, url: str, record: RecordT) -> RecordT:
        raw = await self._request("POST", url, json=record.to_store())
        return type(record).model_validate(raw)

    # ------------------------------------------------------------------
    # Topic partitions
    # ------------------------------------------------------------------

    async def list_topic_partitions(self, collection_id: Optional[int] = None) -> List[TopicPartition]:
        filters = {"uploadid": collection_id} if collection_id is not None else {}
        partitions = await self._list(self.topics_url, TopicPartition, filters)
        return sorted(partitions, key=lambda p: p.partition_index)

    async def get_topic_partition(self, collection_id: int, partition_index: int) -> Optional[TopicPartition]:
        partitions = await self._list(
            self.topics_url, TopicPartition, {"uploadid": collection_id, "part": partition_index}
        )
        return partitions[0] if partitions else None

    async def create_topic_partition(self, partition: TopicPartition) -> TopicPartition:
        return await self._create(self.topics_url, partition)

    async def latest_collection_id(self) -> int:
        """Highest collection id seen in the topics resource, 0 when empty"""
        raw = await self._request("GET", self.topics_url, empty_on_404=True)
        if not isinstance(raw, list):
            return 0
        ids = [
            item.get("uploadid") for item in raw
            if isinstance(item.get("uploadid"), int) and not isinstance(item.get("uploadid"), bool)
        ]
        return max(ids) if ids else 0

    # ------------------------------------------------------------------
    # Quiz questions
    # ------------------------------------------------------------------

    async def list_quiz_questions(
        self,
        collection_id: int,
        partition_index: Optional[int] = None,
    ) -> List[QuizQuestion]:
        filters: Dict[str, Any] = {"uploadid": collection_id}
        if partition_index is not None:
            filters["part"] = partition_index
        return await self._list(self.quiz_url, QuizQuestion, filters)

    async def create_quiz_question(self, question: QuizQuestion) -> QuizQuestion:
        return await self._create(self.quiz_url, question)

    async def update_user_answer(self, question_id: str, answer: str) -> QuizQuestion:
        raw = await self._request("PUT", f"{self.quiz_url}/{question_id}", json={"user_answer": answer})
        return QuizQuestion.model_validate(raw)

    # ------------------------------------------------------------------
    # Course modules
    # ------------------------------------------------------------------

    async def list_course_modules(self, collection_id: int) -> List[CourseModule]:
        modules = await self._list(self.course_url, CourseModule, {"uploadid": collection_id})
        return sorted(modules, key=lambda m: m.created_at)

    async def create_course_module(self, module: CourseModule) -> CourseModule:
        return await self._create(self.course_url, module)

    async def ping(self) -> None:
        """Raise UpstreamUnavailable unless every resource answers"""
        for url in (self.topics_url, self.quiz_url, self.course_url):
            await self._request("GET", url, params={"limit": 1}, empty_on_404=True)


# Global store client instance
store_client = StoreClient()
