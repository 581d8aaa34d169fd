from datetime import datetime
from enum import Enum

from pydantic import Field

from bikelane_sentinel.schemas.common import CamelModel, GeoLocation


class CameraStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    MAINTENANCE = "maintenance"


class TrafficCamera(CamelModel):
    id: str
    name: str
    location: GeoLocation
    area: str  # Borough (Manhattan, Brooklyn, etc.)
    image_url: str
    last_updated: datetime
    status: CameraStatus = CameraStatus.ONLINE
    near_bike_lane: bool = False


class TrafficCameraFeed(CamelModel):
    camera_id: str
    camera_name: str
    timestamp: datetime
    image_url: str = Field(..., description="Live image URL with a cache-busting parameter.")
    location: GeoLocation
