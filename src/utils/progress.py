"""Progress tracking for batch execution."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.utils.logger import get_logger

if TYPE_CHECKING:
    from src.models.batch_result import OperationResult

logger = get_logger(__name__)


@dataclass
class ProgressTracker:
    """Running counts for one batch, logged as results arrive.

    Only touched from the thread collecting results, so no locking.
    """

    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)

    def record(self, result: OperationResult) -> None:
        """Count a finished operation as a success or a failure."""
        self.processed += 1
        if result.success:
            self.successful += 1
        else:
            self.failed += 1
            self.errors.append(f"{result.operation_id}: {result.error}")

    def record_skip(self, count: int = 1) -> None:
        """Count operations that never started because the batch was cut short."""
        self.skipped += count

    @property
    def elapsed_seconds(self) -> float:
        """Time elapsed since the batch started."""
        return time.monotonic() - self.start_time

    @property
    def progress_percentage(self) -> float:
        """Percentage of operations finished, skipped ones included."""
        if self.total == 0:
            return 100.0
        return ((self.processed + self.skipped) / self.total) * 100.0

    def log_progress(self, every_n: int = 10) -> None:
        """Log progress every N finished operations and on the last one."""
        if self.processed % every_n == 0 or self.processed == self.total:
            logger.info(
                "batch_progress",
                processed=self.processed,
                total=self.total,
                successful=self.successful,
                failed=self.failed,
                percentage=f"{self.progress_percentage:.1f}%",
                elapsed=f"{self.elapsed_seconds:.1f}s",
            )

    def summary(self) -> dict[str, int | float | list[str]]:
        """Return counts for the completion log line."""
        return {
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_seconds": round(self.elapsed_seconds, 2),
            "errors": self.errors,
        }
