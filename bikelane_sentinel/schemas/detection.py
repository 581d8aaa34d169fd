from datetime import datetime
from typing import Optional

from bikelane_sentinel.schemas.common import CamelModel, GeoLocation


class DetectionResult(CamelModel):
    """Outcome of one pass through the detection pipeline."""

    has_cars_in_bike_lane: bool
    answer: str
    timestamp: datetime
    vehicle_type: Optional[str] = None
    camera_id: Optional[str] = None
    location: Optional[GeoLocation] = None
    violation_id: Optional[str] = None


class HealthStatus(CamelModel):
    success: bool = True
    message: str
    timestamp: datetime
    version: str
