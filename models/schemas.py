from pydantic import BaseModel, ConfigDict, Field
from typing import List, Dict, Any, Optional, Literal
from enum import Enum


SENTINEL_OPTION = "I don't know"


class StoreRecord(BaseModel):
    """Base for records kept in the remote store under their original wire names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Persisted entities
# ============================================================================

class UploadSession(BaseModel):
    collection_id: int = Field(..., ge=0)
    learner_age: int = Field(16, ge=1, le=120)


class TopicPartition(StoreRecord):
    id: Optional[str] = None
    collection_id: int = Field(..., alias="uploadid")
    partition_index: int = Field(..., alias="part", ge=1, le=9)
    topic1: str
    topic2: str
    topic3: str
    topic4: str
    topic5: str
    age: Optional[int] = None

    @property
    def topics(self) -> List[str]:
        return [self.topic1, self.topic2, self.topic3, self.topic4, self.topic5]


class QuizQuestion(StoreRecord):
    id: Optional[str] = None
    collection_id: int = Field(..., alias="uploadid")
    partition_index: int = Field(..., alias="part")
    topic: str
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str = SENTINEL_OPTION
    correct_answer: Literal["a", "b", "c"]
    user_answer: Literal["", "a", "b", "c", "d"] = ""

    @property
    def answered(self) -> bool:
        return self.user_answer.strip() != ""

    @property
    def is_correct(self) -> bool:
        return self.user_answer == self.correct_answer

    def option_text(self, letter: str) -> Optional[str]:
        return getattr(self, f"option_{letter}", None) if letter else None


class CourseModule(StoreRecord):
    id: Optional[str] = None
    collection_id: int = Field(..., alias="uploadid")
    course_title: str
    topic: str
    description: str
    learning_objectives: List[str]
    recommended_resources: List[str]
    created_at: int = Field(..., alias="createdAt")


# ============================================================================
# Generation job triggers
# ============================================================================

class JobStatus(str, Enum):
    COMPLETE = "complete"
    COURSE_GENERATION_COMPLETE = "course-generation-complete"
    ERROR = "error"


class UploadedFile(BaseModel):
    data: str = Field(..., description="Base64-encoded document bytes")
    mime_type: str = "application/pdf"


class TopicExtractionRequest(BaseModel):
    files: List[UploadedFile] = Field(..., min_length=1)
    uploadid: Optional[int] = Field(None, ge=0)
    age: int = Field(16, ge=1, le=120)


class QuizGenerationRequest(BaseModel):
    uploadid: int = Field(..., ge=0)
    part: int = Field(..., ge=1, le=9)


class CourseGenerationRequest(BaseModel):
    uploadid: int = Field(..., ge=0)
    weakTopics: List[str] = Field(default_factory=list)
    strongTopics: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)


# ============================================================================
# Read / write query responses
# ============================================================================

class LatestUploadIdResponse(BaseModel):
    latest_upload_id: int


class PartitionStatus(BaseModel):
    partition_index: int
    quiz_id: int
    topics: List[str]
    generated: bool
    taken: bool


class CollectionOverviewResponse(BaseModel):
    collection_id: int
    last_partition: int
    partitions: List[PartitionStatus]
    all_completed: bool


class QuizQuestionView(BaseModel):
    id: Optional[str]
    topic: str
    question: str
    options: Dict[str, str]
    user_answer: str
    correct_answer: Optional[str] = None


class QuizResponse(BaseModel):
    quiz_id: int
    collection_id: int
    partition_index: int
    read_only: bool
    questions: List[QuizQuestionView]
    score: Optional[int] = None
    total: int


class SubmitAnswersRequest(BaseModel):
    answers: Dict[str, Literal["a", "b", "c", "d"]] = Field(..., min_length=1)


class SubmitAnswersResponse(BaseModel):
    quiz_id: int
    updated: List[str]
    failed: List[str]
    score: int
    total: int


class QuizGenerationStatusResponse(BaseModel):
    quiz_id: int
    generated: bool
    taken: bool


class TopicStatsResponse(BaseModel):
    topic: str
    label: str
    total: int
    correct: int
    accuracy: float


class PartitionStatsResponse(BaseModel):
    partition_index: int
    total: int
    correct: int
    accuracy: float


class AnalysisResponse(BaseModel):
    collection_id: int
    total: int
    correct: int
    incorrect: int
    score: float
    topics: List[TopicStatsResponse]
    weak_topics: List[str]
    strong_topics: List[str]
    partitions: List[PartitionStatsResponse]


class CourseResponse(BaseModel):
    collection_id: int
    course_title: Optional[str]
    modules: List[CourseModule]


class HealthCheckResponse(BaseModel):
    status: str
    timestamp: str
    services: Dict[str, str]
