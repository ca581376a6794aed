"""Bounded exponential-backoff retry with cooperative cancellation."""

import logging
import random
import threading
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from .errors import TranslationCancelled, is_retryable

T = TypeVar("T")

logger = logging.getLogger(__name__)

# on_waiting(delay_seconds, attempt_number, max_retries)
WaitingCallback = Callable[[float, int, int], None]


class CancelToken:
    """Cooperative cancellation signal shared by one translation run.

    Waiting on the token doubles as a cancellable sleep: ``wait`` returns as
    soon as ``cancel`` is called instead of running the full delay.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TranslationCancelled()

    def wait(self, seconds: float) -> bool:
        """Sleep for up to ``seconds``.

        Returns:
            True if cancelled before or during the wait.
        """
        if seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


@dataclass
class RetryContext:
    """Per-call retry state.

    Attributes:
        attempt: Zero-based attempt counter.
        max_retries: Retries allowed after the first attempt.
        last_error: Most recent failure, if any.
    """
    attempt: int
    max_retries: int
    last_error: Optional[BaseException] = None

    @property
    def retries_left(self) -> bool:
        return self.attempt < self.max_retries


def backoff_delay(attempt: int, base_delay: float = 15.0, max_jitter: float = 2.0) -> float:
    """Compute the wait before retrying.

    Args:
        attempt: Zero-based attempt that just failed.
        base_delay: Delay for the first retry in seconds.
        max_jitter: Upper bound of uniform random jitter in seconds.

    Returns:
        Delay in seconds: base_delay * 2**attempt plus jitter.
    """
    return base_delay * (2 ** attempt) + random.uniform(0, max_jitter)


def call_with_retry(
    operation: Callable[[], T],
    max_retries: int = 5,
    cancel_token: Optional[CancelToken] = None,
    on_waiting: Optional[WaitingCallback] = None,
    base_delay: float = 15.0,
    max_jitter: float = 2.0,
) -> T:
    """Run an operation, retrying rate-limit and empty-response failures.

    The operation is attempted once and then retried up to ``max_retries``
    times. Only errors classified by ``is_retryable`` are retried; anything
    else propagates immediately. Waits are cancellable through
    ``cancel_token``.

    Args:
        operation: Zero-argument callable performing the external call.
        max_retries: Maximum number of retries after the first attempt.
        cancel_token: Optional cancellation signal.
        on_waiting: Called as (delay_seconds, attempt_number, max_retries)
            before each backoff wait.
        base_delay: Delay for the first retry in seconds.
        max_jitter: Upper bound of the random jitter in seconds.

    Returns:
        The operation's result.

    Raises:
        TranslationCancelled: If cancelled before an attempt, during a wait,
            or while the external call was in flight.
        Exception: The terminal error, or the last retryable error once
            retries are exhausted.
    """
    token = cancel_token or CancelToken()
    context = RetryContext(attempt=0, max_retries=max_retries)

    while True:
        token.raise_if_cancelled()

        try:
            result = operation()
        except Exception as e:
            context.last_error = e
            if not is_retryable(e):
                raise

            if not context.retries_left:
                logger.warning(f"Giving up after {max_retries} retries: {e}")
                raise context.last_error

            delay = backoff_delay(context.attempt, base_delay, max_jitter)
            attempt_number = context.attempt + 1
            logger.warning(
                f"Retryable error: {e}. Waiting {delay:.0f}s before retry "
                f"(attempt {attempt_number}/{max_retries})"
            )
            if on_waiting:
                on_waiting(delay, attempt_number, max_retries)

            if token.wait(delay):
                raise TranslationCancelled()
            context.attempt += 1
            continue

        # The call is never interrupted; its result is dropped instead
        token.raise_if_cancelled()
        return result
