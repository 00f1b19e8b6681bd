"""
Exception hierarchy for the content-generation pipeline.

Every error carries:
- error_code: machine-readable string (e.g. "TOPIC_PARTITION_NOT_FOUND")
- status_code: HTTP status the API layer maps it to
- message: human-readable description
- context: optional structured metadata dict
"""

from typing import Optional, Dict, Any, List


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.context = context or {}
        super().__init__(message)


class ValidationError(PipelineError):
    """Model output failed its required shape. No persistence happens."""

    def __init__(
        self,
        message: str,
        issues: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.issues = issues or []
        ctx = {"issues": self.issues}
        if context:
            ctx.update(context)
        super().__init__(message, error_code="INVALID_MODEL_OUTPUT", status_code=400, context=ctx)


class InvalidJobRequest(PipelineError):
    """Malformed or incomplete job trigger parameters."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="INVALID_REQUEST", status_code=400, context=context)


class EncodingRangeError(PipelineError):
    """A composite quiz identifier cannot represent the given pair."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="IDENTIFIER_OUT_OF_RANGE", status_code=400, context=context)


class NotFoundError(PipelineError):
    """404 resource-not-found errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "TOPIC_PARTITION_NOT_FOUND",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=404, context=context)


class AnswersLockedError(PipelineError):
    """Answers were already recorded for the partition."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="ANSWERS_LOCKED", status_code=409, context=context)


class QuizAlreadyExistsError(PipelineError):
    """A quiz was already generated for the partition."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="QUIZ_ALREADY_EXISTS", status_code=409, context=context)


class TransportError(PipelineError):
    """The generative model call or its stream failed."""

    def __init__(
        self,
        message: str,
        error_code: str = "MODEL_TRANSPORT_FAILED",
        status_code: int = 502,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=status_code, context=context)


class JobTimeoutError(TransportError):
    """The whole job exceeded its maximum duration. Not resumable."""

    def __init__(self, max_seconds: float, context: Optional[Dict[str, Any]] = None):
        self.max_seconds = max_seconds
        super().__init__(
            f"Generation job exceeded {max_seconds:g}s",
            error_code="JOB_TIMEOUT",
            status_code=504,
            context=context,
        )


class StreamClosedError(PipelineError):
    """The consumer went away before the job settled."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Stream closed before the job settled",
            error_code="STREAM_CLOSED",
            status_code=499,
            context=context,
        )


class UpstreamUnavailable(PipelineError):
    """The persistence store could not be reached or answered with an error."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="STORE_UNAVAILABLE", status_code=503, context=context)


class PersistenceItemError(PipelineError):
    """One item of a batch failed to persist. Recovered locally, never raised out of a job."""

    def __init__(self, item_label: str, cause: Exception):
        self.item_label = item_label
        self.cause = cause
        super().__init__(
            f"Failed to persist {item_label}: {cause}",
            error_code="PERSISTENCE_ITEM_FAILED",
            status_code=502,
            context={"item": item_label},
        )
