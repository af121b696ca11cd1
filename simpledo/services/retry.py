# simpledo/services/retry.py

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional
from loguru import logger

DEFAULT_MAX_ATTEMPTS = 5


def exponential_backoff(attempt: int) -> float:
    """Seconds to wait after the `attempt`-th failure: 2, 4, 8, 16, ..."""
    return float(2 ** attempt)


@dataclass
class RetryResult:
    value: Any = None
    error: Optional[str] = None
    attempts: int = 0
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


def with_retry(
    call: Callable[[], Any],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: Callable[[int], float] = exponential_backoff,
    sleep: Callable[[float], Any] = time.sleep,
    label: str = "complete request",
    is_cancelled: Optional[Callable[[], bool]] = None,
) -> RetryResult:
    """
    Calls `call` until it returns, up to `max_attempts` times, sleeping
    `backoff(n)` seconds after the n-th failure. There is no sleep after the
    last attempt.

    Failures never escape: the outcome (value or error message) comes back
    as a RetryResult.
    """
    attempts = 0
    while attempts < max_attempts:
        if is_cancelled and is_cancelled():
            logger.info(f"Stopped trying to {label}: run was cancelled")
            return RetryResult(attempts=attempts, cancelled=True)
        try:
            value = call()
            return RetryResult(value=value, attempts=attempts + 1)
        except Exception as e:
            attempts += 1
            if attempts >= max_attempts:
                logger.error(f"Giving up trying to {label} after {attempts} attempts: {e}")
                message = str(e) or "Unknown network error."
                return RetryResult(
                    error=f"Failed to {label} after {max_attempts} attempts. Error: {message}",
                    attempts=attempts,
                )
            delay = backoff(attempts)
            logger.warning(f"Attempt {attempts} to {label} failed ({e}). Retrying in {delay:g}s...")
            sleep(delay)
    return RetryResult(error=f"Failed to {label}: no attempts were made.", attempts=0)
