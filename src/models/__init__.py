"""Pydantic data models for the Canvus batch client."""

from src.models.batch_result import BatchSummary, OperationResult
from src.models.config import BatchConfig, Config
from src.models.operation import (
    CanvasRef,
    Operation,
    OperationKind,
    ResourceRef,
    ResourceType,
    UserRef,
    WidgetDeleteMetadata,
    WidgetRef,
)

__all__ = [
    "BatchConfig",
    "BatchSummary",
    "CanvasRef",
    "Config",
    "Operation",
    "OperationKind",
    "OperationResult",
    "ResourceRef",
    "ResourceType",
    "UserRef",
    "WidgetDeleteMetadata",
    "WidgetRef",
]
