"""
The bike lane detection pipeline.

validate the upload -> resolve the image source -> ask the vision model ->
parse its answer -> record a violation when the answer is positive.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from bikelane_sentinel.core.exceptions import ImageValidationError
from bikelane_sentinel.db.store import ViolationStore
from bikelane_sentinel.schemas.common import GeoLocation
from bikelane_sentinel.schemas.detection import DetectionResult
from bikelane_sentinel.schemas.violation import Violation, ViolationStatus
from bikelane_sentinel.services.answer_parser import UNKNOWN_VEHICLE, parse_answer
from bikelane_sentinel.services.image_source import ImageSourceResolver, ResolvedImage
from bikelane_sentinel.services.inference import InferenceClient, question_for, to_data_uri

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif")
USER_SUBMITTED_CAMERA_ID = "user-submitted"
DEFAULT_LOCATION = GeoLocation(lat=40.7128, lng=-74.0060)
# The model gives no confidence score; every detection is recorded with this value
DETECTION_CONFIDENCE = 0.85

IMAGE_REQUIRED_MESSAGE = "Image file is required."
INVALID_TYPE_MESSAGE = "Invalid file type. Please upload a JPEG, PNG, or GIF image."


@dataclass(frozen=True)
class UploadedImage:
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def validate_upload(
        data: Optional[bytes],
        content_type: Optional[str],
        max_size: int,
        size: Optional[int] = None,
) -> UploadedImage:
    """
    Checks presence, then media type, then size. Raises ImageValidationError.

    `size` is the declared upload size when known; `data` may then be truncated.
    """
    if data is None:
        raise ImageValidationError(IMAGE_REQUIRED_MESSAGE)

    if (content_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ImageValidationError(INVALID_TYPE_MESSAGE)

    if max(size or 0, len(data)) > max_size:
        max_mb = max_size / (1024 * 1024)
        raise ImageValidationError(
            f"File size too large. Please upload an image smaller than {max_mb:g}MB."
        )

    return UploadedImage(data=data, content_type=content_type.lower())


async def read_upload(upload, max_size: int) -> Tuple[bytes, Optional[int]]:
    """
    Reads an UploadFile without pulling more than `max_size + 1` bytes into memory.

    Returns the bytes and the declared size. An upload already declared larger
    than `max_size` is not read at all.
    """
    if upload.size is not None and upload.size > max_size:
        return b"", upload.size
    return await upload.read(max_size + 1), upload.size


def record_violation(
        store: ViolationStore,
        upload: UploadedImage,
        resolved: ResolvedImage,
        vehicle_type: Optional[str],
        camera_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
) -> Violation:
    """Builds a Pending violation from a positive detection and stores it."""
    camera = resolved.matched_camera

    # The camera image is referenced by URL; an upload is embedded as a data URI
    # of the bytes the user sent, even when a camera frame was analyzed instead.
    if camera is not None and resolved.camera_image_url:
        image_url = resolved.camera_image_url
    else:
        image_url = to_data_uri(upload.data, upload.content_type)

    violation = Violation(
        id=str(uuid.uuid4()),
        camera_id=camera_id or USER_SUBMITTED_CAMERA_ID,
        image_url=image_url,
        vehicle_type=vehicle_type or UNKNOWN_VEHICLE,
        location=resolved.location or DEFAULT_LOCATION,
        timestamp=timestamp or datetime.now(timezone.utc),
        status=ViolationStatus.PENDING,
        confidence=DETECTION_CONFIDENCE,
        notes=f"Detected from traffic camera: {camera.name}" if camera else None,
    )
    return store.add(violation)


class DetectionService:
    def __init__(
            self,
            inference_client: InferenceClient,
            resolver: ImageSourceResolver,
            store: ViolationStore,
            prompt_mode: str = "extended",
            max_file_size: int = 10 * 1024 * 1024,
    ):
        self.inference_client = inference_client
        self.resolver = resolver
        self.store = store
        self.prompt_mode = prompt_mode
        self.max_file_size = max_file_size

    async def detect(
            self,
            data: Optional[bytes],
            content_type: Optional[str],
            camera_id: Optional[str] = None,
            size: Optional[int] = None,
    ) -> DetectionResult:
        upload = validate_upload(data, content_type, self.max_file_size, size)

        resolved = await self.resolver.resolve(upload.data, camera_id, upload.content_type)

        # No fallback here: an inference failure fails the request
        answer = await self.inference_client.query(
            resolved.image_bytes, question_for(self.prompt_mode), resolved.content_type
        )
        parsed = parse_answer(answer, self.prompt_mode)
        logger.info(
            "Detection answer %r -> violation=%s (camera=%s, camera frame=%s)",
            answer, parsed.has_cars_in_bike_lane, camera_id or "-", resolved.used_camera_frame,
        )

        result = DetectionResult(
            has_cars_in_bike_lane=parsed.has_cars_in_bike_lane,
            answer=answer,
            timestamp=datetime.now(timezone.utc),
            camera_id=camera_id or None,
            location=resolved.location,
        )

        if parsed.has_cars_in_bike_lane:
            violation = record_violation(
                self.store, upload, resolved, parsed.vehicle_type, camera_id, result.timestamp
            )
            result.violation_id = violation.id
            result.vehicle_type = violation.vehicle_type

        return result
