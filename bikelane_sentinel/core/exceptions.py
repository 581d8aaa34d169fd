import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class SentinelError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ImageValidationError(SentinelError):
    """The uploaded image is missing, of the wrong type, or too large."""

    status_code = status.HTTP_400_BAD_REQUEST


class ViolationNotFoundError(SentinelError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, violation_id: str):
        super().__init__(f"Violation with ID {violation_id} not found")
        self.violation_id = violation_id


class CameraNotFoundError(SentinelError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, camera_id: str):
        super().__init__(f"Camera with ID {camera_id} not found")
        self.camera_id = camera_id


class CameraUnavailableError(SentinelError):
    """An upstream camera call failed. Detection degrades instead of surfacing it."""

    status_code = status.HTTP_502_BAD_GATEWAY


class InferenceError(SentinelError):
    """The vision-language model call failed or returned an unusable body."""


def error_body(message: str) -> dict:
    return {"success": False, "message": message}


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Bad request bodies/params are reported as 400 in the common envelope
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(f"Invalid request: {details}"),
    )


async def sentinel_exception_handler(request: Request, exc: SentinelError):
    if exc.status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SentinelError, sentinel_exception_handler)
