from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelSchema(BaseModel):
    """Response payloads use camelCase keys; python code keeps snake_case."""
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,     # Allows vessel_name="X" or vesselName="X"
        alias_generator=to_camel,
    )


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str
    data: T | None = None
