"""Bounded-concurrency executor for batches of resource operations."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    stop_any,
    wait_fixed,
)

from src.core.dispatch import dispatch
from src.core.errors import (
    BatchAbortedError,
    BatchCancelledError,
    BatchInterruptedError,
    BatchTimeoutError,
    DispatchError,
    OperationCancelledError,
)
from src.models.batch_result import OperationResult
from src.models.config import BatchConfig
from src.utils.cancellation import BatchScope, CancelReason
from src.utils.progress import ProgressTracker

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Sequence

    from src.models.operation import Operation
    from src.services.protocols import ResourceServiceProtocol

logger = structlog.get_logger(__name__)

_INTERRUPTION_ERRORS: dict[CancelReason, type[BatchInterruptedError]] = {
    CancelReason.TIMEOUT: BatchTimeoutError,
    CancelReason.CANCELLED: BatchCancelledError,
    CancelReason.ABORTED: BatchAbortedError,
}


def _is_transient(exc: BaseException) -> bool:
    """Dispatch errors are permanent and cancellation is final; retry the rest."""
    return isinstance(exc, Exception) and not isinstance(
        exc, (DispatchError, OperationCancelledError)
    )


def _stop_when_cancelled(scope: BatchScope) -> Callable[[RetryCallState], bool]:
    def stop(retry_state: RetryCallState) -> bool:
        return scope.cancelled

    return stop


def _interruptible_sleep(scope: BatchScope) -> Callable[[float], None]:
    def sleep(seconds: float) -> None:
        if scope.wait(seconds):
            msg = f"retry wait interrupted: batch {scope.reason}"
            raise OperationCancelledError(msg)

    return sleep


class BatchExecutor:
    """Runs batches of operations against a resource service.

    Every operation of a batch is submitted up front to a thread pool sized
    to max_concurrency, so at most that many run at once and the rest queue.
    Each operation is retried on its own with a fixed delay. Results are
    collected on the calling thread, which also runs the progress callback.
    """

    def __init__(
        self,
        resource_service: ResourceServiceProtocol,
        config: BatchConfig | None = None,
    ) -> None:
        self.service = resource_service
        self.config = config if config is not None else BatchConfig()

    def execute_batch(
        self,
        operations: Sequence[Operation],
        cancel_event: threading.Event | None = None,
    ) -> list[OperationResult]:
        """Execute operations concurrently and return one result per executed operation.

        Results come back in submission order. Individual failures are
        reported through each result's success/error fields, never raised.

        Args:
            operations: Operations to run.
            cancel_event: Optional event the caller sets to cancel the batch.

        Raises:
            BatchInterruptedError: The deadline expired, the caller cancelled,
                or a failure aborted the batch with continue_on_error off.
                Results completed before the cut are on `.results`; operations
                that never started have none.
        """
        if not operations:
            return []

        total = len(operations)
        scope = BatchScope(timeout=self.config.timeout, cancel_event=cancel_event)
        tracker = ProgressTracker(total=total)
        slots: list[OperationResult | None] = [None] * total
        completed: list[OperationResult] = []
        first_failure: Exception | None = None

        logger.info(
            "batch_started",
            operations=total,
            max_concurrency=self.config.max_concurrency,
            timeout=self.config.timeout,
            retry_attempts=self.config.retry_attempts,
        )

        with ThreadPoolExecutor(
            max_workers=self.config.max_concurrency,
            thread_name_prefix="canvus-batch",
        ) as executor:
            futures = {
                executor.submit(self._run_operation, operation, scope): index
                for index, operation in enumerate(operations)
            }

            try:
                for future in as_completed(futures):
                    result = future.result()
                    if result is None:
                        tracker.record_skip()
                        continue

                    slots[futures[future]] = result
                    completed.append(result)
                    tracker.record(result)

                    if not result.success:
                        logger.warning(
                            "batch_operation_failed",
                            operation_id=result.operation_id,
                            retries=result.retries,
                            error=str(result.error),
                        )
                        if first_failure is None:
                            first_failure = result.error
                        if not self.config.continue_on_error:
                            scope.abort()

                    if self.config.progress_callback is not None:
                        self.config.progress_callback(len(completed), total, list(completed))

                    tracker.log_progress(every_n=10)
            except BaseException:
                # Unwind quickly: queued work is skipped, running work stops retrying.
                scope.abort()
                raise

        results = [result for result in slots if result is not None]
        stats = tracker.summary()
        stats.pop("errors")
        logger.info("batch_completed", **stats)

        reason = scope.reason
        if reason is not None:
            logger.warning(
                "batch_interrupted",
                reason=str(reason),
                completed=len(results),
                total=total,
            )
            error = _INTERRUPTION_ERRORS[reason](results, total)
            if reason == CancelReason.TIMEOUT:
                raise error from TimeoutError(
                    f"batch deadline of {self.config.timeout}s exceeded"
                )
            if reason == CancelReason.ABORTED:
                raise error from first_failure
            raise error

        return results

    def _run_operation(self, operation: Operation, scope: BatchScope) -> OperationResult | None:
        """Worker entry point. Returns None when the batch ended before this one started."""
        if scope.cancelled:
            return None
        return self.execute_operation(operation, scope)

    def execute_operation(
        self,
        operation: Operation,
        scope: BatchScope | None = None,
    ) -> OperationResult:
        """Run a single operation with fixed-delay retries and build its result."""
        scope = scope if scope is not None else BatchScope()
        start_time = datetime.now(UTC)
        started = time.monotonic()
        attempts = 0
        success = False
        last_error: Exception | None = None

        def log_retry(retry_state: RetryCallState) -> None:
            logger.info(
                "retrying_operation",
                operation_id=operation.id,
                kind=str(operation.kind),
                attempt=retry_state.attempt_number,
                error=str(last_error),
            )

        retrying = Retrying(
            stop=stop_any(
                stop_after_attempt(self.config.retry_attempts + 1),
                _stop_when_cancelled(scope),
            ),
            wait=wait_fixed(self.config.retry_delay),
            retry=retry_if_exception(_is_transient),
            sleep=_interruptible_sleep(scope),
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            for attempt in retrying:
                with attempt:
                    attempts += 1
                    try:
                        dispatch(self.service, operation)
                    except Exception as exc:
                        last_error = exc
                        raise
            success = True
        except OperationCancelledError as exc:
            # Raised by the retry wait; keep the failure that preceded it.
            if last_error is None:
                last_error = exc
        except Exception as exc:
            last_error = exc

        end_time = datetime.now(UTC)
        return OperationResult(
            operation_id=operation.id,
            success=success,
            error=None if success else last_error,
            start_time=start_time,
            end_time=end_time,
            duration=timedelta(seconds=time.monotonic() - started),
            retries=max(attempts - 1, 0),
        )
