"""CLI command implementations for Canvus batch operations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from pydantic import TypeAdapter, ValidationError

from src.core.dispatch import check_operation
from src.core.errors import BatchInterruptedError, DispatchError
from src.core.result_aggregation import format_batch_summary, summarize
from src.models.config import Config
from src.models.operation import Operation
from src.utils.logger import configure_logging

if TYPE_CHECKING:
    from src.models.batch_result import BatchSummary, OperationResult

_OPERATIONS_ADAPTER = TypeAdapter(list[Operation])


def _get_config() -> Config:
    """Load configuration from environment and .env file."""
    return Config()  # type: ignore[call-arg]


def load_operations(path: str | Path) -> list[Operation]:
    """Read a JSON array of operations from a file.

    Raises:
        ValidationError: The file is not a valid list of operations.
    """
    return _OPERATIONS_ADAPTER.validate_json(Path(path).read_bytes())


def _summary_to_dict(summary: BatchSummary, interrupted: str | None) -> dict[str, Any]:
    return {
        "total_operations": summary.total_operations,
        "successful": summary.successful,
        "failed": summary.failed,
        "total_duration_seconds": summary.total_duration.total_seconds(),
        "average_duration_seconds": summary.average_duration.total_seconds(),
        "interrupted": interrupted,
        "failed_operations": [
            {
                "operation_id": result.operation_id,
                "error": str(result.error),
                "retries": result.retries,
            }
            for result in summary.failed_operations
        ],
    }


def _echo_progress(completed: int, total: int, results: list[OperationResult]) -> None:
    latest = results[-1]
    status = "ok" if latest.success else "failed"
    click.echo(f"[PROGRESS] {completed}/{total} {latest.operation_id} {status}", err=True)


@click.command()
@click.argument("operations_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--max-concurrency", default=None, type=int, help="Parallel operations (1-100)")
@click.option("--timeout", default=None, type=float, help="Whole-batch timeout in seconds")
@click.option("--retry-attempts", default=None, type=int, help="Retries per failed operation")
@click.option("--retry-delay", default=None, type=float, help="Seconds between retries")
@click.option("--fail-fast", is_flag=True, help="Abort the batch on the first failure")
@click.option("--progress", is_flag=True, help="Print a line per completed operation")
@click.option(
    "--output-format",
    default="summary",
    type=click.Choice(["summary", "json"]),
    help="Output format",
)
def run_batch(
    operations_file: str,
    max_concurrency: int | None,
    timeout: float | None,
    retry_attempts: int | None,
    retry_delay: float | None,
    fail_fast: bool,
    progress: bool,
    output_format: str,
) -> None:
    """Execute a JSON file of operations against the Canvus server."""
    config = _get_config()
    configure_logging(config.log_level)

    try:
        operations = load_operations(operations_file)
    except ValidationError as exc:
        click.echo(f"[ERROR] Invalid operations file: {exc}")
        raise SystemExit(1) from exc

    overrides: dict[str, Any] = {
        "batch_max_concurrency": max_concurrency,
        "batch_timeout": timeout,
        "batch_retry_attempts": retry_attempts,
        "batch_retry_delay": retry_delay,
        "batch_continue_on_error": False if fail_fast else None,
    }
    config = config.model_copy(
        update={key: value for key, value in overrides.items() if value is not None}
    )
    try:
        batch_config = config.batch_config(
            progress_callback=_echo_progress if progress else None
        )
    except ValidationError as exc:
        click.echo(f"[ERROR] Invalid batch options: {exc}")
        raise SystemExit(1) from exc

    from src.services.batch_executor import BatchExecutor
    from src.services.canvus_client import CanvusClient

    interrupted: str | None = None
    with CanvusClient.from_config(config) as client:
        executor = BatchExecutor(client, batch_config)
        if output_format == "summary":
            click.echo(f"[INFO] Executing {len(operations)} operations...")
        try:
            results = executor.execute_batch(operations)
        except BatchInterruptedError as exc:
            results = exc.results
            interrupted = exc.reason

    summary = summarize(results)
    if output_format == "json":
        click.echo(json.dumps(_summary_to_dict(summary, interrupted), indent=2))
    else:
        click.echo(format_batch_summary(summary))
        if interrupted is not None:
            click.echo(
                f"[ERROR] Batch {interrupted}: "
                f"{summary.total_operations}/{len(operations)} operations completed"
            )

    if interrupted is not None or summary.failed:
        raise SystemExit(1)


@click.command()
@click.argument("operations_file", type=click.Path(exists=True, dir_okay=False))
def validate_batch(operations_file: str) -> None:
    """Check an operations file without contacting the server."""
    try:
        operations = load_operations(operations_file)
    except ValidationError as exc:
        click.echo(f"[ERROR] Invalid operations file: {exc}")
        raise SystemExit(1) from exc

    problems: list[str] = []
    for operation in operations:
        try:
            check_operation(operation)
        except DispatchError as exc:
            problems.append(f"{operation.id}: {exc}")

    if problems:
        click.echo(f"[ERROR] {len(problems)} of {len(operations)} operations are invalid:")
        for problem in problems:
            click.echo(f"  - {problem}")
        raise SystemExit(1)

    click.echo(f"[SUCCESS] {len(operations)} operations are valid")
