"""FastAPI dependency providers for the shared service instances."""

from fastapi import Depends

from analytics.performance_analyzer import QuizPerformanceAnalyzer
from config.store_client import StoreClient, store_client
from content.generator import ContentGenerator
from services.job_tracker import JobTracker, job_tracker
from services.status_service import StatusService

# built on first use so importing the app needs no API key
_content_generator = None
_analyzer = QuizPerformanceAnalyzer()


def get_store() -> StoreClient:
    return store_client


def get_job_tracker() -> JobTracker:
    return job_tracker


def get_content_generator(store: StoreClient = Depends(get_store)) -> ContentGenerator:
    global _content_generator
    if _content_generator is None:
        _content_generator = ContentGenerator(store)
    return _content_generator


def get_status_service(
    store: StoreClient = Depends(get_store),
    tracker: JobTracker = Depends(get_job_tracker),
) -> StatusService:
    return StatusService(store, tracker)


def get_analyzer() -> QuizPerformanceAnalyzer:
    return _analyzer
