"""Content generation pipeline: model output validation, identifiers and topic partitioning."""

from content.content_validator import ContentValidator, JobKind, ValidationResult
from content.exceptions import PipelineError
from content.identifiers import decode_quiz_id, encode_quiz_id
from content.topics import chunk_into_partitions, course_domain, topic_label

__all__ = [
    'ContentValidator',
    'JobKind',
    'ValidationResult',
    'PipelineError',
    'decode_quiz_id',
    'encode_quiz_id',
    'chunk_into_partitions',
    'course_domain',
    'topic_label',
]
