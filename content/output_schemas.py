"""Pydantic shapes the generative model must produce for each job kind."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from models.schemas import SENTINEL_OPTION


class TopicExtractionOutput(BaseModel):
    topics: List[str] = Field(..., min_length=5)

    @field_validator("topics")
    @classmethod
    def _non_empty_topics(cls, topics: List[str]) -> List[str]:
        cleaned = [t.strip() for t in topics]
        if any(not t for t in cleaned):
            raise ValueError("topic strings must be non-empty")
        return cleaned


class QuizQuestionDraft(BaseModel):
    question: str = Field(..., min_length=5)
    topic: str = Field(..., min_length=1)
    option_a: str = Field(..., min_length=1)
    option_b: str = Field(..., min_length=1)
    option_c: str = Field(..., min_length=1)
    option_d: Optional[str] = None
    correct_answer: Literal["a", "b", "c"]

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _normalize_answer(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _force_sentinel(self):
        # option d is never model-authored
        self.option_d = SENTINEL_OPTION
        return self


class QuizGenerationOutput(BaseModel):
    questions: List[QuizQuestionDraft] = Field(..., min_length=1)


class CourseModuleDraft(BaseModel):
    topic: str = Field(..., min_length=1)
    description: str = Field(..., min_length=5)
    learning_objectives: List[str] = Field(..., min_length=1)
    recommended_resources: List[str] = Field(..., min_length=3)


class CourseGenerationOutput(BaseModel):
    course_title: str = Field(..., min_length=1)
    weak_modules: List[CourseModuleDraft] = Field(default_factory=list)
    strong_modules: List[CourseModuleDraft] = Field(default_factory=list)

    @property
    def modules(self) -> List[CourseModuleDraft]:
        return [*self.weak_modules, *self.strong_modules]
