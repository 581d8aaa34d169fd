from fastapi import Depends, Request

from bikelane_sentinel.core.config import Settings
from bikelane_sentinel.db.store import ViolationStore
from bikelane_sentinel.services.cameras import TrafficCameraService
from bikelane_sentinel.services.detection import DetectionService
from bikelane_sentinel.services.image_source import ImageSourceResolver
from bikelane_sentinel.services.inference import InferenceClient

# Collaborators are built once by the application factory and kept on
# app.state; routes receive them through these dependencies.


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_violation_store(request: Request) -> ViolationStore:
    return request.app.state.violation_store


def get_camera_service(request: Request) -> TrafficCameraService:
    return request.app.state.camera_service


def get_inference_client(request: Request) -> InferenceClient:
    return request.app.state.inference_client


def get_detection_service(
        settings: Settings = Depends(get_app_settings),
        inference_client: InferenceClient = Depends(get_inference_client),
        camera_service: TrafficCameraService = Depends(get_camera_service),
        store: ViolationStore = Depends(get_violation_store),
) -> DetectionService:
    """Wires the pipeline from the shared collaborators (cheap, per request)."""
    return DetectionService(
        inference_client=inference_client,
        resolver=ImageSourceResolver(camera_service),
        store=store,
        prompt_mode=settings.PROMPT_MODE,
        max_file_size=settings.MAX_FILE_SIZE,
    )
