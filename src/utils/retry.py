"""Transport retry logic with structured logging using tenacity."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, ParamSpec, TypeVar

import requests
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.core.errors import CanvusAPIError
from src.utils.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)

# Network-level failures from requests; ConnectionError also covers
# SSLError and ProxyError.
_RETRYABLE_EXCEPTIONS: tuple[type[BaseException], ...] = (
    requests.ConnectionError,
    requests.Timeout,
)


def is_retryable_exception(exc: BaseException) -> bool:
    """True for transport failures and API errors worth another attempt (429/5xx)."""
    if isinstance(exc, CanvusAPIError):
        return exc.retryable
    return isinstance(exc, _RETRYABLE_EXCEPTIONS)


def _log_retry(retry_state: RetryCallState) -> None:
    """Log retry attempt with structured context."""
    logger.warning(
        "retrying_request",
        attempt=retry_state.attempt_number,
        function=getattr(retry_state.fn, "__name__", "unknown"),
        error=str(retry_state.outcome.exception()) if retry_state.outcome else "unknown",
    )


def retry_with_logging(
    max_attempts: int = 3,
    min_wait: float = 0.1,
    max_wait: float = 1.0,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator using tenacity with structured logging.

    Retries on requests ConnectionError/Timeout and on CanvusAPIError with a
    429 or 5xx status. Uses exponential backoff between min_wait and max_wait
    seconds.
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @retry(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
            retry=retry_if_exception(is_retryable_exception),
            before_sleep=_log_retry,
            reraise=True,
        )
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
