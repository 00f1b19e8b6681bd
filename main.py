from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from config.settings import settings
from config.redis_client import redis_client
from config.store_client import store_client
from content.exceptions import PipelineError
from api.health import router as health_router
from api.generation import router as generation_router
from api.quizzes import router as quizzes_router
from api.analysis import router as analysis_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle events for FastAPI application"""
    # Startup
    logger.info("🚀 Starting QuizPath Backend...")

    try:
        await store_client.connect()

        # Redis failures are logged and leave broadcasts disabled
        await redis_client.connect()

        logger.info("✅ QuizPath Backend started successfully")
        logger.info(f"📡 API available at http://0.0.0.0:8000")
        logger.info(f"📚 API docs at http://0.0.0.0:8000/docs")

    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise

    yield

    # Shutdown
    logger.info("⏳ Shutting down QuizPath Backend...")

    try:
        await redis_client.disconnect()
        await store_client.disconnect()

        logger.info("✅ QuizPath Backend shut down gracefully")

    except Exception as e:
        logger.error(f"❌ Shutdown error: {e}")


# Initialize FastAPI app
app = FastAPI(
    title="QuizPath - Generation Backend",
    description="Topic extraction, quiz and course generation with Google Gemini",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: [{exc.error_code}] {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: [{exc.error_code}] {exc.message}")

    content = {"detail": exc.message, "error_code": exc.error_code}
    if exc.context.get("issues"):
        content["issues"] = exc.context["issues"]
    return JSONResponse(status_code=exc.status_code, content=content)


# Include routers
app.include_router(health_router)
app.include_router(generation_router)
app.include_router(quizzes_router)
app.include_router(analysis_router)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "QuizPath - Generation Backend",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
