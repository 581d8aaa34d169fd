"""
Chooses the image bytes the detection pipeline analyzes.

With a camera id the resolver tries to swap the upload for that camera's
live frame: look the camera up, build its feed, download the frame. Each
step builds on the one before it; the first step that fails or comes back
empty ends the chain and the last good result is used. The uploaded bytes
are always the final fallback, so nothing here ever raises to the caller.
"""
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional

from bikelane_sentinel.schemas.camera import TrafficCamera
from bikelane_sentinel.schemas.common import GeoLocation
from bikelane_sentinel.services.cameras import TrafficCameraService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    image_bytes: bytes
    content_type: str = "image/jpeg"
    location: Optional[GeoLocation] = None
    camera_image_url: Optional[str] = None
    matched_camera: Optional[TrafficCamera] = None
    # True once the camera frame replaced the uploaded bytes
    used_camera_frame: bool = False


# A step returns the next result, or None when there is nothing more to do.
Step = Callable[[ResolvedImage], Awaitable[Optional[ResolvedImage]]]


class ImageSourceResolver:
    def __init__(self, camera_service: TrafficCameraService):
        self.camera_service = camera_service

    def _steps(self, camera_id: str) -> List[Step]:
        async def match_camera(current: ResolvedImage) -> Optional[ResolvedImage]:
            camera = await self.camera_service.find_camera(camera_id)
            if camera is None:
                logger.warning("Camera %s not found, analyzing the uploaded image", camera_id)
                return None
            return replace(current, matched_camera=camera, location=camera.location)

        async def build_feed(current: ResolvedImage) -> Optional[ResolvedImage]:
            feed = self.camera_service.get_camera_feed(current.matched_camera)
            return replace(current, camera_image_url=feed.image_url)

        async def download_frame(current: ResolvedImage) -> Optional[ResolvedImage]:
            frame = await self.camera_service.download_image(current.camera_image_url)
            return replace(
                current,
                image_bytes=frame.content,
                content_type=frame.content_type,
                used_camera_frame=True,
            )

        return [match_camera, build_feed, download_frame]

    async def resolve(
            self,
            uploaded: bytes,
            camera_id: Optional[str] = None,
            content_type: str = "image/jpeg",
    ) -> ResolvedImage:
        result = ResolvedImage(image_bytes=uploaded, content_type=content_type)
        if not camera_id:
            return result

        for step in self._steps(camera_id):
            try:
                next_result = await step(result)
            except Exception as e:
                logger.warning(
                    "Camera %s: step '%s' failed (%s), keeping previous image source",
                    camera_id, step.__name__, e,
                )
                break
            if next_result is None:
                break
            result = next_result

        return result
