import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from starlette.datastructures import UploadFile

from bikelane_sentinel.core.dependencies import get_detection_service
from bikelane_sentinel.core.exceptions import ImageValidationError
from bikelane_sentinel.schemas.common import ApiResponse
from bikelane_sentinel.schemas.detection import DetectionResult
from bikelane_sentinel.services.detection import DetectionService, read_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Detection"])

IMAGE_FIELD_SCHEMA = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "image": {"type": "string", "format": "binary"},
                        "cameraId": {"type": "string"},
                    },
                }
            }
        }
    }
}


@router.post(
    "/detect-bike-lane-violations",
    response_model=ApiResponse[DetectionResult],
    response_model_exclude_none=True,
    openapi_extra=IMAGE_FIELD_SCHEMA,
)
async def detect_bike_lane_violations(
        request: Request,
        # -- Optional camera whose live frame should be analyzed instead --
        camera_id: Optional[str] = Form(None, alias="cameraId"),
        service: DetectionService = Depends(get_detection_service),
):
    """
    Asks the vision model whether cars are parked in the bike lane.

    A positive answer is stored as a Pending violation. "No violation" is a
    normal outcome and still answers 200.
    """
    # The form is already parsed for cameraId; read the image from it directly
    # so a non-file "image" field counts as a missing image, not a bad request.
    form = await request.form()
    image = form.get("image")

    data, content_type, size = None, None, None
    if isinstance(image, UploadFile):
        data, size = await read_upload(image, service.max_file_size)
        content_type = image.content_type

    try:
        result = await service.detect(data, content_type, camera_id, size)
    except ImageValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except Exception as e:
        logger.exception("Bike lane detection error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {e}",
        )

    return ApiResponse(data=result)
