from typing import Callable, Optional

import httpx


def exponential_backoff(wait_min: float, wait_max: float, attempt: int) -> float:
    """Delay after the given failed attempt (1-based): wait_min doubled per attempt, capped at wait_max."""
    return min(wait_max, wait_min * (2 ** (attempt - 1)))


def default_retry_predicate(
    status_code: Optional[int] = None, error: Optional[BaseException] = None
) -> bool:
    """Retry on transport errors and 5xx responses, never on 4xx."""
    if error is not None:
        return isinstance(error, httpx.TransportError)
    return status_code is not None and status_code >= 500


class RetryPolicy:
    """
    Bounded exponential backoff policy applied by the Prober to a single probe.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        wait_min: float = 2.0,
        wait_max: float = 10.0,
        backoff_fn: Callable[[float, float, int], float] = exponential_backoff,
        retry_predicate: Callable[..., bool] = default_retry_predicate,
    ):
        """
        Args:
            max_attempts (int): Total number of HTTP attempts per probe, at least 1.
            wait_min (float): Delay in seconds after the first failed attempt.
            wait_max (float): Upper bound for any single delay.
            backoff_fn: Callable (wait_min, wait_max, attempt) -> delay seconds.
            retry_predicate: Callable (status_code=None, error=None) -> bool.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if wait_min < 0 or wait_max < wait_min:
            raise ValueError("retry waits must satisfy 0 <= wait_min <= wait_max")
        self.max_attempts = max_attempts
        self.wait_min = wait_min
        self.wait_max = wait_max
        self.backoff_fn = backoff_fn
        self.retry_predicate = retry_predicate

    def backoff(self, attempt: int) -> float:
        return self.backoff_fn(self.wait_min, self.wait_max, attempt)

    def should_retry(
        self,
        attempt: int,
        status_code: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> bool:
        if attempt >= self.max_attempts:
            return False
        return self.retry_predicate(status_code=status_code, error=error)

    def __repr__(self):
        return (
            f"RetryPolicy(max_attempts={self.max_attempts}, wait_min={self.wait_min}, "
            f"wait_max={self.wait_max})"
        )
