"""
NYC DOT traffic camera access.

Fetches the public camera catalog, works out which cameras sit near a bike
lane, builds live-image feed URLs and downloads frames. The upstream network
is unreliable, so the catalog falls back to a built-in list of cameras.
"""
import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional

import httpx

from bikelane_sentinel.core.exceptions import CameraNotFoundError, CameraUnavailableError
from bikelane_sentinel.schemas.camera import CameraStatus, TrafficCamera, TrafficCameraFeed
from bikelane_sentinel.schemas.common import GeoLocation

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.8

# Bike lanes with high violation rates; radius in miles
BIKE_LANE_HOTSPOTS = [
    {"name": "Bedford Ave, Brooklyn", "lat": 40.7197, "lng": -73.9566, "radius": 0.5},
    {"name": "1st Ave, Manhattan", "lat": 40.7282, "lng": -73.9942, "radius": 0.5},
    {"name": "8th Ave, Manhattan", "lat": 40.7328, "lng": -74.0027, "radius": 0.5},
    {"name": "Queens Blvd, Queens", "lat": 40.7334, "lng": -73.9272, "radius": 0.5},
    {"name": "Grand Concourse, Bronx", "lat": 40.8301, "lng": -73.9187, "radius": 0.5},
]

# (name, min lat, max lat, min lng, max lng), first match wins
BOROUGH_BOUNDS = [
    ("Manhattan", 40.7, 40.9, -74.03, -73.9),
    ("Brooklyn", 40.6, 40.75, -74.05, -73.85),
    ("Queens", 40.65, 40.85, -73.96, -73.7),
    ("Bronx", 40.8, 40.92, -73.94, -73.8),
    ("Staten Island", 40.5, 40.65, -74.25, -74.05),
]

FALLBACK_CAMERAS = [
    ("d4bbce49-b087-4524-a835-08cb253926a7", "First Ave at E 42nd St", 40.7500, -73.9707, "Manhattan"),
    ("07717cda-a5e0-4496-b051-2d0c9f6a873f", "Bedford Ave at N 7th St", 40.7197, -73.9566, "Brooklyn"),
    ("c4e4d38f-89e9-4a09-90ae-24b9ab4ff456", "Queens Blvd at 63rd Dr", 40.7334, -73.9272, "Queens"),
    ("b8a456e2-d820-4494-9f5a-c5f0d7f9d20a", "8th Ave at W 34th St", 40.7328, -74.0027, "Manhattan"),
    ("93c26401-af97-4683-b6c3-2faad7e81ff4", "Grand Concourse at E 161st St", 40.8301, -73.9187, "Bronx"),
]


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def is_near_bike_lane(location: GeoLocation) -> bool:
    return any(
        haversine_miles(location.lat, location.lng, spot["lat"], spot["lng"]) <= spot["radius"]
        for spot in BIKE_LANE_HOTSPOTS
    )


def determine_area(lat: float, lng: float) -> str:
    for name, min_lat, max_lat, min_lng, max_lng in BOROUGH_BOUNDS:
        if min_lat < lat < max_lat and min_lng < lng < max_lng:
            return name
    return "New York City"


class CameraFrame(NamedTuple):
    content: bytes
    content_type: str


def with_cache_buster(url: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}t={int(now.timestamp() * 1000)}"


class TrafficCameraService:
    def __init__(
            self,
            http_client: httpx.AsyncClient,
            catalog_url: str = "https://webcams.nyctmc.org/api/cameras",
            timeout: float = 5.0,
            cache_ttl: float = 60.0,
    ):
        self.http_client = http_client
        self.catalog_url = catalog_url.rstrip("/")
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self._cache: List[TrafficCamera] = []
        self._cached_at: Optional[float] = None

    def fallback_cameras(self) -> List[TrafficCamera]:
        """The built-in camera list served when the catalog cannot be reached."""
        now = datetime.now(timezone.utc)
        return [
            TrafficCamera(
                id=camera_id,
                name=name,
                location=GeoLocation(lat=lat, lng=lng),
                area=area,
                image_url=f"{self.catalog_url}/{camera_id}/image",
                last_updated=now,
                status=CameraStatus.ONLINE,
                near_bike_lane=True,
            )
            for camera_id, name, lat, lng, area in FALLBACK_CAMERAS
        ]

    def parse_camera(self, raw: Dict[str, Any]) -> TrafficCamera:
        """Converts one catalog entry. Raises KeyError/TypeError/ValueError on malformed input."""
        lat, lng = float(raw["lat"]), float(raw["lng"])
        location = GeoLocation(lat=lat, lng=lng)
        camera_id = str(raw["id"])

        return TrafficCamera(
            id=camera_id,
            name=raw.get("name") or "Unnamed Camera",
            location=location,
            area=raw.get("area") or determine_area(lat, lng),
            image_url=raw.get("image_url") or f"{self.catalog_url}/{camera_id}/image",
            last_updated=datetime.now(timezone.utc),
            status=CameraStatus.ONLINE if raw.get("is_online") else CameraStatus.OFFLINE,
            near_bike_lane=is_near_bike_lane(location),
        )

    def _cache_is_fresh(self) -> bool:
        return (
            bool(self._cache)
            and self._cached_at is not None
            and time.monotonic() - self._cached_at < self.cache_ttl
        )

    async def get_all_cameras(self) -> List[TrafficCamera]:
        if self._cache_is_fresh():
            return list(self._cache)

        try:
            response = await self.http_client.get(self.catalog_url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to get traffic camera data (%s), using fallback cameras", e)
            return self.fallback_cameras()

        if not isinstance(payload, list) or not payload:
            logger.warning("Camera catalog returned no usable data, using fallback cameras")
            return self.fallback_cameras()

        cameras = []
        for raw in payload:
            try:
                cameras.append(self.parse_camera(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Skipping malformed camera entry %r: %s", raw, e)

        if not cameras:
            logger.warning("Camera catalog entries were all malformed, using fallback cameras")
            return self.fallback_cameras()

        self._cache = cameras
        self._cached_at = time.monotonic()
        return list(cameras)

    async def get_cameras_near_bike_lanes(self) -> List[TrafficCamera]:
        return [camera for camera in await self.get_all_cameras() if camera.near_bike_lane]

    async def find_camera(self, camera_id: str) -> Optional[TrafficCamera]:
        for camera in await self.get_all_cameras():
            if camera.id == camera_id:
                return camera
        for camera in self.fallback_cameras():
            if camera.id == camera_id:
                return camera
        return None

    def get_camera_feed(self, camera: TrafficCamera) -> TrafficCameraFeed:
        now = datetime.now(timezone.utc)
        return TrafficCameraFeed(
            camera_id=camera.id,
            camera_name=camera.name,
            timestamp=now,
            image_url=with_cache_buster(camera.image_url, now),
            location=camera.location,
        )

    async def get_camera_feed_by_id(self, camera_id: str) -> TrafficCameraFeed:
        camera = await self.find_camera(camera_id)
        if camera is None:
            raise CameraNotFoundError(camera_id)
        return self.get_camera_feed(camera)

    async def download_image(self, url: str) -> CameraFrame:
        try:
            response = await self.http_client.get(url, timeout=self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise CameraUnavailableError(f"Failed to download camera image: {e}") from e

        if not response.content:
            raise CameraUnavailableError("Camera returned an empty image")
        # NYC DOT cameras serve JPEG; trust the header when there is one
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        return CameraFrame(response.content, content_type or "image/jpeg")
