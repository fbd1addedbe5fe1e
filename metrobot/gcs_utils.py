"""
Google Cloud Storage helpers for the bot's key/value store.

Reads and writes small text blobs, retrying transient errors with
exponential backoff. Non-transient errors are raised to the caller.
"""

import logging
import time
from functools import wraps
from typing import Callable, Iterator, Optional, TypeVar

from google.api_core import exceptions as gcs_exceptions

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_EXPONENTIAL_BASE = 2

T = TypeVar('T')


def backoff_delays(max_retries, initial_delay, max_delay, exponential_base) -> Iterator[float]:
    """Yield the wait before each retry: initial_delay * base**n, capped at max_delay."""
    for attempt in range(max_retries):
        yield min(initial_delay * (exponential_base ** attempt), max_delay)


def retry_with_backoff(
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    exponential_base: float = DEFAULT_EXPONENTIAL_BASE,
    retryable_exceptions: tuple = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable:
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound on any single delay
        exponential_base: Growth factor between delays
        retryable_exceptions: Exception types worth retrying (None = all)
        sleep: Sleep function (defaults to time.sleep)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delays = backoff_delays(max_retries, initial_delay, max_delay, exponential_base)
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if retryable_exceptions and not isinstance(e, retryable_exceptions):
                        raise
                    delay = next(delays, None)
                    if delay is None:
                        logger.error(f"Giving up on {func.__name__} after {max_retries} retries: {e!r}")
                        raise
                    logger.warning(f"{func.__name__} failed ({e!r}), retrying in {delay:.1f}s")
                    (sleep or time.sleep)(delay)

        return wrapper
    return decorator


# Network errors plus GCS 5xx/429 responses
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    gcs_exceptions.ServiceUnavailable,
    gcs_exceptions.InternalServerError,
    gcs_exceptions.TooManyRequests,
    gcs_exceptions.GatewayTimeout,
    gcs_exceptions.DeadlineExceeded,
)


@retry_with_backoff(retryable_exceptions=RETRYABLE_EXCEPTIONS)
def gcs_read_text(client, bucket_name: str, blob_name: str) -> Optional[str]:
    """
    Read a blob as text.

    Returns:
        Blob contents, or None if the blob doesn't exist
    """
    blob = client.bucket(bucket_name).blob(blob_name)
    if not blob.exists():
        return None
    return blob.download_as_text()


@retry_with_backoff(retryable_exceptions=RETRYABLE_EXCEPTIONS)
def gcs_write_text(
    client,
    bucket_name: str,
    blob_name: str,
    content: str,
    content_type: str = 'application/json',
) -> bool:
    """Write text to a blob, replacing any existing content."""
    blob = client.bucket(bucket_name).blob(blob_name)
    blob.upload_from_string(content, content_type=content_type)
    return True
