from typing import Generic, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class GeoLocation(BaseModel):
    lat: float
    lng: float


class ApiResponse(BaseModel, Generic[T]):
    """The `{success, data, message}` envelope every endpoint answers with."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
