"""Batch result aggregation functions."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

from src.models.batch_result import BatchSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.models.batch_result import OperationResult


def summarize(results: Iterable[OperationResult]) -> BatchSummary:
    """Aggregate operation results into counts and durations.

    Pure: safe to call any number of times on the same results.
    """
    results = list(results)
    successful = 0
    failed: list[OperationResult] = []
    total_duration = timedelta()

    for result in results:
        if result.success:
            successful += 1
        else:
            failed.append(result)
        total_duration += result.duration

    average = total_duration / len(results) if results else timedelta()

    return BatchSummary(
        total_operations=len(results),
        successful=successful,
        failed=len(failed),
        total_duration=total_duration,
        average_duration=average,
        failed_operations=failed,
    )


def format_batch_summary(summary: BatchSummary, max_errors: int = 10) -> str:
    """Format a batch summary as a human-readable string."""
    lines = [
        f"[SUMMARY] Operations: {summary.total_operations}",
        f"  Successful: {summary.successful}",
        f"  Failed: {summary.failed}",
        f"  Total duration: {summary.total_duration.total_seconds():.3f}s",
        f"  Average duration: {summary.average_duration.total_seconds():.3f}s",
    ]

    failures = summary.failed_operations
    if failures:
        lines.append(f"  Errors ({len(failures)}):")
        for result in failures[:max_errors]:
            lines.append(f"    - {result.operation_id}: {result.error}")
        if len(failures) > max_errors:
            lines.append(f"    ... and {len(failures) - max_errors} more")

    return "\n".join(lines)
