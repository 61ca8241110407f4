"""
Retry/backoff executor for outbound provider calls.

Wraps a zero-argument callable. Rate limits, 5xx and transport failures are
retried with full-jitter exponential backoff; other 4xx fail at once.
Operations passed here must be safe to repeat (search and generation reads).
"""
import logging
import random
import time
from typing import Any, Callable, Optional

import openai
import requests

from leadgen.errors import FatalUpstreamError, RetryExhaustedError

logger = logging.getLogger('services.retry')

DEFAULT_MAX_RETRIES = 4
DEFAULT_BASE_DELAY = 0.5  # seconds

# Failures that never reached an HTTP status
TRANSPORT_ERRORS = (
    requests.Timeout,
    requests.ConnectionError,
    openai.APIConnectionError,  # includes APITimeoutError
    TimeoutError,
    ConnectionError,
)


def is_fatal_status(status: int) -> bool:
    """4xx other than 429 will not get better on retry."""
    return 400 <= status < 500 and status != 429


def backoff_delay(attempt: int, base_delay: float, rand: Callable[[], float] = random.random) -> float:
    """Full-jitter delay (seconds) before the retry that follows failed attempt `attempt`."""
    return rand() * base_delay * (2 ** (attempt - 1))


def _status_of(exc: BaseException) -> Optional[int]:
    status = getattr(exc, 'status_code', None)
    if isinstance(status, int):
        return status
    response = getattr(exc, 'response', None)
    status = getattr(response, 'status_code', None)
    return status if isinstance(status, int) else None


def _body_of(response: Any) -> Any:
    if response is None:
        return None
    try:
        return response.json()
    except Exception:
        text = getattr(response, 'text', '')
        return text[:500] if isinstance(text, str) else None


def with_backoff(
    operation: Callable[[], Any],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    *,
    sleep: Callable[[float], None] = time.sleep,
    rand: Callable[[], float] = random.random,
    label: str = '',
) -> Any:
    """
    Run `operation` up to `max_retries` times.

    A returned object with `status_code` and a false `ok` (a requests
    Response) counts as a failure, as does a raised exception.

    Returns:
        The first successful result.

    Raises:
        FatalUpstreamError: on a non-retryable 4xx.
        RetryExhaustedError: after `max_retries` failed attempts.
        Any other exception raised by `operation` propagates unchanged.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    last_status: Optional[int] = None
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_retries + 1):
        try:
            result = operation()
        except Exception as e:
            status = _status_of(e)
            if status is not None:
                if is_fatal_status(status):
                    raise FatalUpstreamError(status, _body_of(getattr(e, 'response', None)), label) from e
            elif not isinstance(e, TRANSPORT_ERRORS):
                raise
            last_status = status
            last_error = e
        else:
            status = getattr(result, 'status_code', None)
            if not isinstance(status, int) or getattr(result, 'ok', True):
                return result
            if is_fatal_status(status):
                body = _body_of(result)
                logger.error("%s fatal status %d: %s", label or 'upstream', status, body)
                raise FatalUpstreamError(status, body, label)
            last_status = status
            last_error = None

        if attempt == max_retries:
            break

        delay = backoff_delay(attempt, base_delay, rand)
        logger.warning(
            "%s attempt %d/%d failed (%s), retrying in %.0fms",
            label or 'upstream', attempt, max_retries,
            last_status if last_status is not None else last_error, delay * 1000,
        )
        sleep(delay)

    logger.error("%s failed after %d attempts", label or 'upstream', max_retries)
    raise RetryExhaustedError(max_retries, last_status, last_error, label) from last_error
