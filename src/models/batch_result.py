"""Per-operation results and batch summary models."""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class OperationResult(BaseModel):
    """Terminal outcome of one executed operation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    operation_id: str
    success: bool
    error: Exception | None = None
    start_time: datetime
    end_time: datetime
    duration: timedelta
    retries: int = 0

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, value: int) -> int:
        """Retries count attempts beyond the first and cannot be negative."""
        if value < 0:
            msg = "retries must not be negative"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_error_consistency(self) -> OperationResult:
        """An error is present exactly when the operation failed."""
        if self.success and self.error is not None:
            msg = "successful results must not carry an error"
            raise ValueError(msg)
        if not self.success and self.error is None:
            msg = "failed results must carry the last error"
            raise ValueError(msg)
        return self


class BatchSummary(BaseModel):
    """Aggregate statistics over a set of operation results."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    total_operations: int
    successful: int
    failed: int
    total_duration: timedelta
    average_duration: timedelta
    failed_operations: list[OperationResult] = []
