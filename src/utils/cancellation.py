"""Shared deadline and cancellation state for a running batch."""

from __future__ import annotations

import threading
import time
from enum import StrEnum


class CancelReason(StrEnum):
    """Why a batch stopped early."""

    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    ABORTED = "aborted"


class BatchScope:
    """Deadline, caller cancel event and internal abort for one batch.

    The first reason observed sticks. Workers poll `cancelled` between
    attempts and sleep through `wait`, which returns early once the scope
    is cancelled.
    """

    # Caller events cannot wake our waits, so they are polled at this interval.
    POLL_INTERVAL = 0.05

    def __init__(
        self,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._deadline = time.monotonic() + timeout if timeout and timeout > 0 else None
        self._external = cancel_event
        self._abort = threading.Event()
        self._lock = threading.Lock()
        self._reason: CancelReason | None = None

    def time_left(self) -> float | None:
        """Seconds until the deadline, or None when the batch has no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def abort(self) -> None:
        """Stop the batch from inside, e.g. after a failure with continue_on_error off."""
        with self._lock:
            if self._reason is None:
                self._reason = CancelReason.ABORTED
        self._abort.set()

    @property
    def reason(self) -> CancelReason | None:
        """The reason the scope was cancelled, or None while it is live."""
        with self._lock:
            if self._reason is None:
                if self._external is not None and self._external.is_set():
                    self._reason = CancelReason.CANCELLED
                elif self._deadline is not None and time.monotonic() >= self._deadline:
                    self._reason = CancelReason.TIMEOUT
            return self._reason

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`. Returns True if the scope was cancelled meanwhile."""
        end = time.monotonic() + seconds
        while not self.cancelled:
            remaining = end - time.monotonic()
            if remaining <= 0:
                return False
            step = remaining
            left = self.time_left()
            if left is not None:
                step = min(step, left)
            if self._external is not None:
                step = min(step, self.POLL_INTERVAL)
            self._abort.wait(step)
        return True
