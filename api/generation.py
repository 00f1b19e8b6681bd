"""FastAPI router for the streamed generation job triggers."""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from api.dependencies import (
    get_content_generator,
    get_job_tracker,
    get_status_service,
    get_store,
)
from config.settings import settings
from config.store_client import StoreClient
from content.content_validator import JobKind
from content.exceptions import QuizAlreadyExistsError, InvalidJobRequest
from content.generator import ContentGenerator, GenerationJob, job_key
from content.streaming import JobStream, StreamFraming, failure_record
from models.schemas import (
    CourseGenerationRequest,
    LatestUploadIdResponse,
    QuizGenerationRequest,
    TopicExtractionRequest,
    UploadSession,
)
from services.job_tracker import JobTracker
from services.status_service import StatusService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generation"])


async def _stream_job(
    job: GenerationJob,
    generator: ContentGenerator,
    tracker: JobTracker,
    framing: StreamFraming,
) -> StreamingResponse:
    stream = JobStream(
        job,
        generator.stream_model(job.messages),
        max_seconds=settings.MAX_JOB_DURATION_SECONDS,
        tracker=tracker,
    )
    await stream.prime()
    logger.info(f"🎯 Streaming job {job.key} ({framing.value} framing)")
    return StreamingResponse(stream.relay(framing), media_type=framing.media_type)


@router.get("/get-latest-uploadid", response_model=LatestUploadIdResponse)
async def get_latest_upload_id(store: StoreClient = Depends(get_store)):
    """Highest collection id issued so far; new uploads use this plus one."""
    return LatestUploadIdResponse(latest_upload_id=await store.latest_collection_id())


@router.post("/topics-generator")
async def generate_topics(
    request: TopicExtractionRequest,
    framing: StreamFraming = Query(StreamFraming.TEXT),
    store: StoreClient = Depends(get_store),
    generator: ContentGenerator = Depends(get_content_generator),
    tracker: JobTracker = Depends(get_job_tracker),
):
    """
    Extract topics from an uploaded document and store them in partitions of five.

    The trailing record carries last_partition and the composite id of the
    collection overview.
    """
    upload = request.files[0]
    try:
        document = base64.b64decode(upload.data, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidJobRequest("files[0].data is not valid base64")
    if not document:
        raise InvalidJobRequest("Uploaded document is empty")

    collection_id = request.uploadid
    if collection_id is None:
        collection_id = await store.latest_collection_id() + 1

    session = UploadSession(collection_id=collection_id, learner_age=request.age)
    job = generator.topic_extraction_job(session, document, upload.mime_type)
    return await _stream_job(job, generator, tracker, framing)


@router.post("/quiz-generator")
async def generate_quiz(
    request: QuizGenerationRequest,
    framing: StreamFraming = Query(StreamFraming.TEXT),
    generator: ContentGenerator = Depends(get_content_generator),
    tracker: JobTracker = Depends(get_job_tracker),
    status: StatusService = Depends(get_status_service),
):
    """Generate one question per topic of a partition."""
    key = job_key(JobKind.QUIZ, request.uploadid, request.part)
    generated, _ = await status.partition_status(request.uploadid, request.part)
    if generated or tracker.is_running(key):
        raise QuizAlreadyExistsError(
            f"A quiz for collection {request.uploadid} partition {request.part} already exists",
            context={"collection_id": request.uploadid, "partition_index": request.part},
        )
    # claim the partition before the next await so a concurrent trigger sees it running
    tracker.begin(key)

    try:
        job = await generator.quiz_generation_job(request.uploadid, request.part)
    except Exception as e:
        identifiers = {"collection_id": request.uploadid, "partition_index": request.part}
        await tracker.complete(key, failure_record(identifiers, e))
        raise
    return await _stream_job(job, generator, tracker, framing)


@router.post("/generate-course")
async def generate_course(
    request: CourseGenerationRequest,
    framing: StreamFraming = Query(StreamFraming.TEXT),
    generator: ContentGenerator = Depends(get_content_generator),
    tracker: JobTracker = Depends(get_job_tracker),
):
    """Generate a personalized course from weak and strong topics. Re-issuing is safe."""
    job = generator.course_generation_job(
        request.uploadid,
        weak_topics=request.weakTopics,
        strong_topics=request.strongTopics,
        interests=[i.strip() for i in request.interests if i.strip()],
    )
    return await _stream_job(job, generator, tracker, framing)
