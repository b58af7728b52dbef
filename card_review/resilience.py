"""
Resilience utilities — bounded retry with exponential backoff.

Provides:
    exponential_delay     — default backoff, 2**attempt * base milliseconds
    retry_async           — async retry driven by exception type
    get_resilience_config — config-driven defaults from global.yaml
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from card_review.config_loader import get_config_value

logger = logging.getLogger(__name__)

_DEFAULT_READ_RETRIES = 3
_DEFAULT_WRITE_RETRIES = 2
_DEFAULT_BASE_DELAY_MS = 1000

DelayFn = Callable[[int], float]
SleepFn = Callable[[float], Awaitable[Any]]


def get_resilience_config() -> dict:
    """Read retry settings from global.yaml. Returns defaults if missing."""
    return {
        "read_max_retries": int(get_config_value("retry.read_max_retries", _DEFAULT_READ_RETRIES)),
        "write_max_retries": int(get_config_value("retry.write_max_retries", _DEFAULT_WRITE_RETRIES)),
        "base_delay_ms": float(get_config_value("retry.base_delay_ms", _DEFAULT_BASE_DELAY_MS)),
    }


def exponential_delay(attempt: int, base_ms: Optional[float] = None) -> float:
    """Milliseconds to wait after the 0-based `attempt` failed: 1000, 2000, 4000, ..."""
    base = base_ms if base_ms is not None else get_resilience_config()["base_delay_ms"]
    return (2 ** attempt) * base


async def retry_async(
    fn: Callable[..., Awaitable],
    *args: Any,
    attempts: int,
    delay: DelayFn = exponential_delay,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: SleepFn = asyncio.sleep,
    context: str = "",
    **kwargs: Any,
) -> Any:
    """Call an async function, retrying on `retryable` exceptions.

    Args:
        fn: Async callable to invoke.
        *args, **kwargs: Forwarded to fn.
        attempts: Total tries (1 = no retry).
        delay: Maps the 0-based failed attempt to a wait in milliseconds.
        retryable: Exception types that trigger a retry. Anything else propagates at once.
        sleep: Awaitable sleep taking seconds (overridable in tests).
        context: Label for log messages.

    Returns:
        The return value of fn on success.

    Raises:
        The last exception if all attempts fail.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    label = f" [{context}]" if context else ""
    last_exc: Optional[BaseException] = None

    for attempt in range(attempts):
        try:
            return await fn(*args, **kwargs)
        except retryable as exc:
            last_exc = exc
            if attempt == attempts - 1:
                logger.error("All %d attempts failed%s: %s", attempts, label, exc)
                raise
            wait_ms = delay(attempt)
            logger.warning(
                "Attempt %d/%d failed%s: %s, retrying in %.0fms",
                attempt + 1, attempts, label, exc, wait_ms,
            )
            await sleep(wait_ms / 1000.0)

    raise last_exc  # unreachable, but satisfies type checkers
