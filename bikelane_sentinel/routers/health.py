from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from bikelane_sentinel.core.config import Settings
from bikelane_sentinel.core.dependencies import get_app_settings
from bikelane_sentinel.schemas.detection import HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(settings: Settings = Depends(get_app_settings)):
    """Liveness probe."""
    return HealthStatus(
        message="Bike Lane Sentinel API is running",
        timestamp=datetime.now(timezone.utc),
        version=settings.VERSION,
    )
