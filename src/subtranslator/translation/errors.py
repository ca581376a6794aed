"""Translation error taxonomy.

Terminal errors propagate to the caller immediately. Retryable errors are
handled by the retry controller and never reach the caller directly.
"""

from typing import Optional


class TranslationError(Exception):
    """Base class for all translation failures."""


class TranslationCancelled(TranslationError):
    """The run was cancelled by the user."""

    def __init__(self, message: str = "Translation cancelled"):
        super().__init__(message)


class AuthenticationFailed(TranslationError):
    """The provider rejected the API key."""


class InvalidRequest(TranslationError):
    """The provider rejected the request as malformed."""


class ContentBlocked(TranslationError):
    """The provider refused to answer because of a safety or policy filter."""


class ProviderUnavailable(TranslationError):
    """The provider failed at the transport or server level."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RetryableError(TranslationError):
    """Transient failure that is worth retrying after a backoff."""


class RateLimited(RetryableError):
    """The provider answered with HTTP 429."""


class EmptyResponse(RetryableError):
    """The provider answered without any usable text."""


RETRYABLE_MARKERS = (
    "rate limit",
    "429",
    "too many",
    "empty response",
    "empty candidates",
    "no response from",
)


def is_retryable(error: BaseException) -> bool:
    """Classify an error as retryable.

    Typed RetryableError instances are always retryable. Other errors are
    classified by message so that failures raised by third-party callables
    are handled the same way.

    Args:
        error: The exception raised by the operation.

    Returns:
        True if the operation should be retried after a backoff.
    """
    if isinstance(error, RetryableError):
        return True
    if isinstance(error, TranslationError):
        return False
    message = str(error).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)
