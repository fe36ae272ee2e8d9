import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

import httpx

from contracts.probe_outcome import ErrorType, OutcomeKind, ProbeOutcome
from core.retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


class RequestConstructionError(ValueError):
    """Raised when a probe request cannot be built from the target URL."""


class Prober:
    """
    Sends a single liveness probe to a URL, retrying transient failures per a RetryPolicy.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the Prober.

        Args:
            client (httpx.AsyncClient): Shared HTTP client; its transport and timeout are used as-is.
            retry_policy (RetryPolicy): Retry/backoff policy, defaults to RetryPolicy().
            sleep: Coroutine used to wait between attempts (injectable for tests).
        """
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    def build_request(self, url: str) -> httpx.Request:
        try:
            request = self.client.build_request("GET", url)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestConstructionError(f"invalid URL {url!r}: {e}") from e
        if request.url.scheme not in ("http", "https") or not request.url.host:
            raise RequestConstructionError(
                f"URL {url!r} must be absolute with an http or https scheme"
            )
        return request

    async def probe(self, url: str) -> ProbeOutcome:
        """
        Probe the URL once, with retries. Never raises.

        The reported duration covers the whole retry sequence, from request
        construction to the final response or error.

        Returns:
            ProbeOutcome: The classified result.
        """
        start = time.perf_counter()
        try:
            request = self.build_request(url)
        except RequestConstructionError as e:
            logger.error(f"Failed to create request: error_type=request_creation url={url} error={e}")
            return ProbeOutcome.transport_failure(
                ErrorType.REQUEST_CREATION,
                duration=time.perf_counter() - start,
                error=str(e),
                attempts=0,
            )

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self.client.send(request, stream=True)
            except httpx.HTTPError as e:
                if self.retry_policy.should_retry(attempt, error=e):
                    await self._wait_before_retry(attempt, url, f"{type(e).__name__}: {e}")
                    continue
                duration = time.perf_counter() - start
                logger.error(
                    f"Failed to send request: error_type=request_failed url={url} "
                    f"attempts={attempt} error={type(e).__name__}: {e}"
                )
                return ProbeOutcome.transport_failure(
                    ErrorType.REQUEST_FAILED,
                    duration=duration,
                    error=f"{type(e).__name__}: {e}",
                    attempts=attempt,
                )

            # Only the status line matters; never read the body
            status_code = response.status_code
            await response.aclose()

            if self.retry_policy.should_retry(attempt, status_code=status_code):
                await self._wait_before_retry(attempt, url, f"status {status_code}")
                continue

            outcome = ProbeOutcome.from_status(
                status_code, duration=time.perf_counter() - start, attempts=attempt
            )
            if outcome.kind is OutcomeKind.SUCCESS:
                logger.info(
                    f"Ping successful: status_code={status_code} duration={outcome.duration:.3f}s attempts={attempt}"
                )
            else:
                logger.warning(
                    f"Request returned non-success status: status_code={status_code} "
                    f"url={url} classification={outcome.label} attempts={attempt}"
                )
            return outcome

    async def _wait_before_retry(self, attempt: int, url: str, reason: str):
        delay = self.retry_policy.backoff(attempt)
        logger.warning(
            f"Probe attempt {attempt}/{self.retry_policy.max_attempts} for {url} failed ({reason}); "
            f"retrying in {delay:.1f}s"
        )
        await self._sleep(delay)
