"""
Quiz API Endpoints

Read-side queries over generated quizzes: the collection overview with its
completion gate, a single partition's quiz, answer submission and the
generation status of a partition.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_status_service, get_store
from config.settings import settings
from config.store_client import StoreClient
from content.exceptions import (
    AnswersLockedError,
    InvalidJobRequest,
    NotFoundError,
    UpstreamUnavailable,
)
from content.identifiers import decode_quiz_id, encode_quiz_id
from models.schemas import (
    CollectionOverviewResponse,
    QuizGenerationStatusResponse,
    QuizQuestionView,
    QuizResponse,
    SubmitAnswersRequest,
    SubmitAnswersResponse,
)
from services.status_service import StatusService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["quizzes"])


async def _load_quiz(store: StoreClient, collection_id: int, partition_index: int):
    questions = await store.list_quiz_questions(collection_id, partition_index)
    if not questions:
        raise NotFoundError(
            f"No quiz for collection {collection_id} partition {partition_index}",
            error_code="QUIZ_NOT_FOUND",
            context={"collection_id": collection_id, "partition_index": partition_index},
        )
    return questions


@router.get("/collections/{composite_id}", response_model=CollectionOverviewResponse)
async def get_collection_overview(
    composite_id: str,
    status: StatusService = Depends(get_status_service),
):
    """
    Partitions of a collection up to the last one reached.

    The composite id packs the collection id with the last partition index;
    all_completed is true once every partition up to it has an answer.
    """
    collection_id, last_partition = decode_quiz_id(composite_id)
    return await status.collection_overview(collection_id, last_partition)


@router.get("/quizzes/{composite_id}", response_model=QuizResponse)
async def get_quiz(composite_id: str, store: StoreClient = Depends(get_store)):
    """Quiz questions for one partition. Answers are revealed once it has been taken."""
    collection_id, partition_index = decode_quiz_id(composite_id)
    questions = await _load_quiz(store, collection_id, partition_index)
    read_only = any(q.answered for q in questions)

    views = [
        QuizQuestionView(
            id=q.id,
            topic=q.topic,
            question=q.question,
            options={letter: q.option_text(letter) for letter in ("a", "b", "c", "d")},
            user_answer=q.user_answer,
            correct_answer=q.correct_answer if read_only else None,
        )
        for q in questions
    ]
    return QuizResponse(
        quiz_id=encode_quiz_id(collection_id, partition_index),
        collection_id=collection_id,
        partition_index=partition_index,
        read_only=read_only,
        questions=views,
        score=sum(1 for q in questions if q.is_correct) if read_only else None,
        total=len(questions),
    )


@router.post("/quizzes/{composite_id}/answers", response_model=SubmitAnswersResponse)
async def submit_answers(
    composite_id: str,
    request: SubmitAnswersRequest,
    store: StoreClient = Depends(get_store),
):
    """
    Record the learner's answers for one partition.

    Only allowed while no answer has been recorded for the partition. Each
    answer is written independently; failed ids are reported back.
    """
    collection_id, partition_index = decode_quiz_id(composite_id)
    questions = await _load_quiz(store, collection_id, partition_index)

    if any(q.answered for q in questions):
        raise AnswersLockedError(
            f"Answers already recorded for collection {collection_id} partition {partition_index}",
            context={"collection_id": collection_id, "partition_index": partition_index},
        )

    by_id = {q.id: q for q in questions}
    unknown = sorted(set(request.answers) - set(by_id))
    if unknown:
        raise InvalidJobRequest(
            f"Unknown question ids: {', '.join(unknown)}",
            context={"unknown_ids": unknown},
        )

    question_ids = list(request.answers)
    results = await asyncio.gather(
        *(store.update_user_answer(qid, request.answers[qid]) for qid in question_ids),
        return_exceptions=True,
    )

    updated, failed = [], []
    for qid, result in zip(question_ids, results):
        if isinstance(result, Exception):
            logger.error(f"Failed to record answer for question {qid}: {result}")
            failed.append(qid)
        else:
            updated.append(qid)

    if not updated:
        raise UpstreamUnavailable(
            "No answer could be recorded",
            context={"collection_id": collection_id, "partition_index": partition_index},
        )

    score = sum(
        1 for q in questions
        if q.id in updated and request.answers[q.id] == q.correct_answer
    )
    logger.info(
        f"📝 Recorded {len(updated)}/{len(question_ids)} answers for collection "
        f"{collection_id} partition {partition_index} (score {score}/{len(questions)})"
    )
    return SubmitAnswersResponse(
        quiz_id=encode_quiz_id(collection_id, partition_index),
        updated=updated,
        failed=failed,
        score=score,
        total=len(questions),
    )


@router.get("/quizzes/{composite_id}/status", response_model=QuizGenerationStatusResponse)
async def get_quiz_status(
    composite_id: str,
    wait: float = Query(0.0, ge=0),
    status: StatusService = Depends(get_status_service),
):
    """
    Whether the partition's quiz exists and has been taken.

    With wait > 0 the call blocks until the quiz is generated or the wait
    (capped server-side) runs out.
    """
    collection_id, partition_index = decode_quiz_id(composite_id)
    timeout = min(wait, settings.STATUS_WAIT_MAX_SECONDS)
    if timeout > 0:
        await status.wait_for_quiz(collection_id, partition_index, timeout)

    generated, answered = await status.partition_status(collection_id, partition_index)
    return QuizGenerationStatusResponse(
        quiz_id=encode_quiz_id(collection_id, partition_index),
        generated=generated,
        taken=answered > 0,
    )
