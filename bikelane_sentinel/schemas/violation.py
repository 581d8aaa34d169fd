from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from bikelane_sentinel.schemas.common import CamelModel, GeoLocation


class ViolationStatus(str, Enum):
    PENDING = "Pending"
    REPORTED = "Reported"
    UNDER_REVIEW = "Under Review"
    CONFIRMED = "Confirmed"
    REJECTED = "Rejected"


class Violation(CamelModel):
    """A vehicle detected occupying a bike lane at a given place and time."""

    id: str
    # Upstream camera id, or "user-submitted" when the image came from a user
    camera_id: str
    # Live camera image URL or a data URI of the uploaded image
    image_url: str
    vehicle_type: str
    license_plate: Optional[str] = None
    location: GeoLocation
    timestamp: datetime
    status: ViolationStatus = ViolationStatus.PENDING
    # Fixed value: the model does not report a confidence score
    confidence: float = Field(..., ge=0.0, le=1.0)
    notes: Optional[str] = None


class ViolationStatusUpdate(CamelModel):
    status: ViolationStatus

    model_config = {
        "extra": "forbid"
    }
