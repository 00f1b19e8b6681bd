"""
Streaming delivery of generation jobs.

Model output is relayed chunk by chunk as it arrives. Once the model stream
has drained and the job's validate-guard-persist continuation has settled,
exactly one trailing completion record is emitted and the stream ends. That
record is the caller's only signal that persistence attempts have finished;
it does not claim every write succeeded.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional

from content.content_validator import JobKind
from content.exceptions import JobTimeoutError, PipelineError, StreamClosedError, TransportError
from content.generator import GenerationJob, JobOutcome
from content.identifiers import encode_quiz_id
from models.schemas import JobStatus
from services.job_tracker import JobTracker

logger = logging.getLogger(__name__)


class StreamFraming(str, Enum):
    TEXT = "text"        # content, blank line, one trailing JSON object
    NDJSON = "ndjson"    # one JSON envelope per line

    @property
    def media_type(self) -> str:
        if self is StreamFraming.NDJSON:
            return "application/x-ndjson"
        return "text/plain; charset=utf-8"


def completion_record(job: GenerationJob, outcome: JobOutcome) -> Dict[str, Any]:
    record: Dict[str, Any] = dict(job.identifiers)
    record["status"] = outcome.status.value
    record["written"] = outcome.written
    record["failed"] = outcome.failed
    if job.kind is JobKind.COURSE:
        record["skipped"] = outcome.skipped
    record.update(outcome.extra)
    last_partition = outcome.extra.get("last_partition")
    if job.kind is JobKind.TOPIC_EXTRACTION and last_partition:
        record["composite_id"] = encode_quiz_id(job.identifiers["collection_id"], last_partition)
    return record


def error_record(job: GenerationJob, error: Exception) -> Dict[str, Any]:
    return failure_record(job.identifiers, error)


def failure_record(identifiers: Dict[str, Any], error: Exception) -> Dict[str, Any]:
    record: Dict[str, Any] = dict(identifiers)
    record["status"] = JobStatus.ERROR.value
    if isinstance(error, PipelineError):
        record["error"] = error.message
        record["error_code"] = error.error_code
        issues = error.context.get("issues")
        if issues:
            record["issues"] = issues
    else:
        record["error"] = str(error)
        record["error_code"] = "INTERNAL_ERROR"
    return record


def extract_trailing_record(text: str) -> Optional[Dict[str, Any]]:
    """Locate the final well-formed JSON object at the end of a text-framed response."""
    end = len(text)
    while True:
        start = text.rfind("{", 0, end)
        if start == -1:
            return None
        try:
            value = json.loads(text[start:].strip())
        except json.JSONDecodeError:
            end = start
            continue
        if isinstance(value, dict):
            return value
        end = start


class JobStream:
    """Single-producer, single-consumer relay of one generation job."""

    def __init__(
        self,
        job: GenerationJob,
        chunks: AsyncIterator[str],
        max_seconds: float,
        tracker: Optional[JobTracker] = None,
    ):
        self.job = job
        self.max_seconds = max_seconds
        self.tracker = tracker
        self._chunks = chunks
        self._first: Optional[str] = None
        self._drained = False
        self._settled = False
        self._deadline: Optional[float] = None

    async def prime(self) -> "JobStream":
        """
        Start the job clock and pull the first chunk.

        Called before the HTTP response starts, so an immediate model failure
        surfaces as an error status instead of an empty stream.
        """
        self._deadline = asyncio.get_running_loop().time() + self.max_seconds
        if self.tracker:
            self.tracker.begin(self.job.key)
        try:
            self._first = await self._next_chunk()
        except TransportError as e:
            await self._abort(e)
            raise
        return self

    async def relay(self, framing: StreamFraming = StreamFraming.TEXT) -> AsyncIterator[str]:
        if self._deadline is None:
            await self.prime()

        text_parts = []
        try:
            chunk = self._first
            while chunk is not None:
                text_parts.append(chunk)
                yield self._frame_content(chunk, framing)
                chunk = await self._next_chunk()

            text = "".join(text_parts)
            try:
                outcome = await self._within_budget(self.job.finalize(text))
                record = completion_record(self.job, outcome)
            except JobTimeoutError:
                raise
            except PipelineError as e:
                logger.warning(f"Job {self.job.key} failed after streaming: {e.message}")
                record = error_record(self.job, e)
            except Exception as e:
                logger.exception(f"Job {self.job.key} post-processing crashed")
                record = error_record(self.job, e)

            await self._settle(record)
            logger.info(f"Job {self.job.key} settled: {record['status']}")
            yield self._frame_record(record, framing)
        except TransportError as e:
            await self._abort(e)
            raise
        finally:
            # closed or cancelled by the consumer before the job settled
            if not self._settled:
                await self._abort(StreamClosedError(context={"job": self.job.key}))
            await self._close_chunks()

    async def _next_chunk(self) -> Optional[str]:
        if self._drained:
            return None
        try:
            return await self._within_budget(self._pull())
        except StopAsyncIteration:
            self._drained = True
            return None

    async def _pull(self) -> str:
        return await self._chunks.__anext__()

    async def _within_budget(self, awaitable):
        remaining = self._deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise JobTimeoutError(self.max_seconds, context={"job": self.job.key})
        try:
            return await asyncio.wait_for(awaitable, remaining)
        except asyncio.TimeoutError:
            raise JobTimeoutError(self.max_seconds, context={"job": self.job.key})

    async def _settle(self, record: Dict[str, Any]):
        self._settled = True
        if self.tracker:
            await self.tracker.complete(self.job.key, record)

    async def _abort(self, error: PipelineError):
        logger.error(f"Job {self.job.key} aborted: {error.message}")
        await self._settle(error_record(self.job, error))

    async def _close_chunks(self):
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    @staticmethod
    def _frame_content(chunk: str, framing: StreamFraming) -> str:
        if framing is StreamFraming.NDJSON:
            return json.dumps({"type": "content", "data": chunk}) + "\n"
        return chunk

    @staticmethod
    def _frame_record(record: Dict[str, Any], framing: StreamFraming) -> str:
        if framing is StreamFraming.NDJSON:
            return json.dumps({"type": "completion", **record}) + "\n"
        return f"\n\n{json.dumps(record)}"
