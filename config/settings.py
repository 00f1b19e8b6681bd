from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Remote resource store (one base URL per resource collection)
    TOPICS_STORE_URL: str = "http://localhost:3001/topics"
    QUIZ_STORE_URL: str = "http://localhost:3001/quiz"
    COURSE_STORE_URL: str = "http://localhost:3001/courses"
    STORE_REQUEST_TIMEOUT: float = 10.0

    # Redis (job completion broadcast)
    REDIS_URL: str = "redis://localhost:6379"
    JOB_COMPLETION_CHANNEL: str = "generation:completed"

    # Google Generative AI
    GOOGLE_API_KEY: str = ""
    GENERATION_MODEL: str = "gemini-1.5-pro-latest"
    GENERATION_TEMPERATURE: float = 0.7

    # Job budget and status polling
    MAX_JOB_DURATION_SECONDS: float = 60.0
    STATUS_POLL_INTERVAL_SECONDS: float = 2.0
    STATUS_WAIT_MAX_SECONDS: float = 60.0

    # Logging
    LOG_LEVEL: str = "INFO"

    # Frontend origins allowed by CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
