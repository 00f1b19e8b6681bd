"""
Analysis API Endpoints

Quiz performance analysis for a collection and the personalized course
generated from it.
"""

import logging

from fastapi import APIRouter, Depends

from analytics.performance_analyzer import QuizPerformanceAnalyzer
from api.dependencies import get_analyzer, get_store
from config.store_client import StoreClient
from content.exceptions import NotFoundError
from models.schemas import (
    AnalysisResponse,
    CourseResponse,
    PartitionStatsResponse,
    TopicStatsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["analysis"])


@router.get("/analysis/{collection_id}", response_model=AnalysisResponse)
async def get_analysis(
    collection_id: int,
    store: StoreClient = Depends(get_store),
    analyzer: QuizPerformanceAnalyzer = Depends(get_analyzer),
):
    """
    Per-topic and per-partition accuracy over every taken partition.

    weak_topics and strong_topics hold the full topic strings, ready to be
    passed back to course generation.
    """
    questions = analyzer.taken_partitions(await store.list_quiz_questions(collection_id))
    if not questions:
        raise NotFoundError(
            f"No answered quizzes for collection {collection_id}",
            error_code="ANALYSIS_NOT_FOUND",
            context={"collection_id": collection_id},
        )

    report = analyzer.analyze(questions)
    logger.info(
        f"📊 Collection {collection_id}: {report.correct}/{report.total} correct, "
        f"{len(report.weak_topics)} weak, {len(report.strong_topics)} strong"
    )

    return AnalysisResponse(
        collection_id=collection_id,
        total=report.total,
        correct=report.correct,
        incorrect=report.incorrect,
        score=report.score,
        topics=[
            TopicStatsResponse(
                topic=t.topic,
                label=t.label,
                total=t.total,
                correct=t.correct,
                accuracy=round(t.accuracy, 4),
            )
            for t in report.topic_stats
        ],
        weak_topics=[t.topic for t in report.weak_topics],
        strong_topics=[t.topic for t in report.strong_topics],
        partitions=[
            PartitionStatsResponse(
                partition_index=p.partition_index,
                total=p.total,
                correct=p.correct,
                accuracy=round(p.accuracy, 4),
            )
            for p in report.partition_stats
        ],
    )


@router.get("/courses/{collection_id}", response_model=CourseResponse)
async def get_course(collection_id: int, store: StoreClient = Depends(get_store)):
    """Course modules generated for a collection, oldest first"""
    modules = await store.list_course_modules(collection_id)
    return CourseResponse(
        collection_id=collection_id,
        course_title=modules[0].course_title if modules else None,
        modules=modules,
    )
