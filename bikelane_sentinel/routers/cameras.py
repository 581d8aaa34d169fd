from typing import List

from fastapi import APIRouter, Depends, Query

from bikelane_sentinel.core.dependencies import get_camera_service
from bikelane_sentinel.schemas.camera import TrafficCamera, TrafficCameraFeed
from bikelane_sentinel.schemas.common import ApiResponse
from bikelane_sentinel.services.cameras import TrafficCameraService

router = APIRouter(prefix="/cameras", tags=["Traffic Cameras"])


@router.get("", response_model=ApiResponse[List[TrafficCamera]], response_model_exclude_none=True)
async def list_cameras(
        near_bike_lanes: bool = Query(False, alias="nearBikeLanes"),
        camera_service: TrafficCameraService = Depends(get_camera_service),
):
    """Lists NYC traffic cameras, optionally only those near a bike lane."""
    if near_bike_lanes:
        cameras = await camera_service.get_cameras_near_bike_lanes()
    else:
        cameras = await camera_service.get_all_cameras()
    return ApiResponse(data=cameras)


@router.get("/{camera_id}/feed", response_model=ApiResponse[TrafficCameraFeed], response_model_exclude_none=True)
async def get_camera_feed(
        camera_id: str,
        camera_service: TrafficCameraService = Depends(get_camera_service),
):
    """Latest image URL for one camera. Unknown cameras answer 404."""
    feed = await camera_service.get_camera_feed_by_id(camera_id)
    return ApiResponse(data=feed)
