"""Schema validation of generative-model output before anything is persisted."""

import logging
import json
from enum import Enum
from typing import Dict, Any, List, Optional, Type

from pydantic import BaseModel, ValidationError as PydanticValidationError

from content.output_schemas import (
    TopicExtractionOutput,
    QuizGenerationOutput,
    CourseGenerationOutput,
)

logger = logging.getLogger(__name__)


class JobKind(str, Enum):
    TOPIC_EXTRACTION = "topic_extraction"
    QUIZ = "quiz"
    COURSE = "course"


class ValidationResult:
    """Tagged result of validating one job's output."""

    def __init__(self, passed: bool, value: Optional[BaseModel] = None, issues: List[str] = None):
        self.passed = passed
        self.value = value
        self.issues = issues or []

    def __bool__(self):
        return self.passed

    @classmethod
    def success(cls, value: BaseModel) -> "ValidationResult":
        return cls(True, value=value)

    @classmethod
    def failure(cls, issues: List[str]) -> "ValidationResult":
        return cls(False, issues=issues)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'passed': self.passed,
            'issues': self.issues
        }


class ContentValidator:
    """Validate generated output against the shape each job kind requires."""

    SCHEMAS: Dict[JobKind, Type[BaseModel]] = {
        JobKind.TOPIC_EXTRACTION: TopicExtractionOutput,
        JobKind.QUIZ: QuizGenerationOutput,
        JobKind.COURSE: CourseGenerationOutput,
    }

    def validate_text(self, text: str, kind: JobKind) -> ValidationResult:
        """
        Parse raw model text and validate it.

        Args:
            text: Accumulated model output, possibly wrapped in a markdown code fence
            kind: Job kind whose schema applies

        Returns:
            ValidationResult carrying the parsed model on success
        """
        try:
            data = self.extract_json(text)
        except json.JSONDecodeError as e:
            logger.warning(f"{kind.value} output is not valid JSON: {e}")
            return ValidationResult.failure([f"Model output is not valid JSON: {e.msg}"])
        return self.validate_data(data, kind)

    def validate_data(self, data: Any, kind: JobKind) -> ValidationResult:
        """Validate already-decoded output."""
        schema = self.SCHEMAS[kind]
        try:
            value = schema.model_validate(data)
        except PydanticValidationError as e:
            issues = [self._format_issue(err) for err in e.errors()]
            logger.warning(f"{kind.value} output failed validation: {issues}")
            return ValidationResult.failure(issues)
        return ValidationResult.success(value)

    def validate_topics(self, data: Any) -> ValidationResult:
        return self.validate_data(data, JobKind.TOPIC_EXTRACTION)

    def validate_quiz(self, data: Any) -> ValidationResult:
        return self.validate_data(data, JobKind.QUIZ)

    def validate_course(self, data: Any) -> ValidationResult:
        return self.validate_data(data, JobKind.COURSE)

    @staticmethod
    def extract_json(content: str) -> Any:
        """Decode JSON from model output, handling markdown code blocks."""
        content = content.strip()
        if content.startswith("```json"):
            content = content[7:]
        elif content.startswith("```"):
            content = content[3:]
        if content.endswith("```"):
            content = content[:-3]

        content = content.strip()
        return json.loads(content)

    @staticmethod
    def _format_issue(error: Dict[str, Any]) -> str:
        location = ".".join(str(part) for part in error.get("loc", ())) or "output"
        return f"{location}: {error.get('msg', 'invalid value')}"
