"""Batch operation models and the resource references they act on."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OperationKind(StrEnum):
    """Closed set of operations a batch can run."""

    MOVE = "move"
    COPY = "copy"
    DELETE = "delete"
    PIN = "pin"
    UNPIN = "unpin"


class ResourceType(StrEnum):
    """Resource variants an operation can target."""

    CANVAS = "canvas"
    WIDGET = "widget"
    USER = "user"


def _non_empty(value: str, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        msg = f"{field_name} must not be empty"
        raise ValueError(msg)
    return stripped


class CanvasRef(BaseModel):
    """Reference to a canvas."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    resource_type: Literal["canvas"] = "canvas"
    id: str

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        """Canvas IDs must be non-empty."""
        return _non_empty(value, "id")


class WidgetRef(BaseModel):
    """Reference to a widget, addressed through the canvas that owns it."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    resource_type: Literal["widget"] = "widget"
    id: str
    canvas_id: str
    widget_type: str | None = None

    @field_validator("id", "canvas_id")
    @classmethod
    def validate_ids(cls, value: str) -> str:
        """Widget and canvas IDs must be non-empty."""
        return _non_empty(value, "id")


class UserRef(BaseModel):
    """Reference to a user account."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    resource_type: Literal["user"] = "user"
    id: int

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: int) -> int:
        """User IDs are positive integers."""
        if value <= 0:
            msg = "user id must be positive"
            raise ValueError(msg)
        return value


ResourceRef = Annotated[CanvasRef | WidgetRef | UserRef, Field(discriminator="resource_type")]


class WidgetDeleteMetadata(BaseModel):
    """Extra data the widget delete primitive needs.

    Deleting goes through the typed collection of the owning canvas, so both
    the canvas and the widget type must be known up front.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    canvas_id: str
    widget_type: str

    @field_validator("canvas_id", "widget_type")
    @classmethod
    def validate_fields(cls, value: str) -> str:
        """Both fields are required to address the widget."""
        return _non_empty(value, "widget delete metadata")


class Operation(BaseModel):
    """One unit of work in a batch."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    kind: OperationKind
    resource: ResourceRef
    target: str | None = None
    metadata: WidgetDeleteMetadata | None = None
