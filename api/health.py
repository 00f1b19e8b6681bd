from fastapi import APIRouter, Depends
from datetime import datetime

from api.dependencies import get_store
from config.redis_client import redis_client
from config.store_client import StoreClient
from content.exceptions import UpstreamUnavailable
from models.schemas import HealthCheckResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(store: StoreClient = Depends(get_store)):
    """Basic health check for all services"""

    services = {}

    # Check the resource store
    try:
        await store.ping()
        services["store"] = "connected"
    except UpstreamUnavailable as e:
        services["store"] = f"disconnected: {e.message}"

    # Redis is optional; without it completion waits poll the store
    if await redis_client.ping():
        services["redis"] = "connected"
    else:
        services["redis"] = "disconnected"

    status = "ok" if all(s == "connected" for s in services.values()) else "degraded"

    return HealthCheckResponse(
        status=status,
        timestamp=datetime.utcnow().isoformat(),
        services=services
    )
