import asyncio
import logging
from typing import Optional

from contracts.probe_outcome import ErrorType, ProbeOutcome
from core.metrics_recorder import MetricsRecorder
from core.prober import Prober

logger = logging.getLogger(__name__)


class PingScheduler:
    """
    Probes one target immediately and then on a fixed interval until shutdown is requested.

    Probes run strictly one after another: the next probe starts no earlier than
    ``interval`` seconds after the previous one started, and never while it is
    still running.
    """

    def __init__(
        self,
        url: str,
        prober: Prober,
        metrics_recorder: MetricsRecorder,
        interval: float,
        shutdown_event: Optional[asyncio.Event] = None,
    ):
        self.url = url
        self.prober = prober
        self.metrics_recorder = metrics_recorder
        self.interval = interval
        self.shutdown_event = shutdown_event or asyncio.Event()
        self.probe_count = 0
        self.in_flight = False
        self.last_outcome: Optional[ProbeOutcome] = None

    async def ping_once(self) -> ProbeOutcome:
        """
        Run one probe and record its outcome. Errors never escape to the loop.
        """
        self.in_flight = True
        self.probe_count += 1
        try:
            outcome = await self.prober.probe(self.url)
        except Exception as e:
            # Prober.probe does not raise; anything here is a bug, not a reason to stop pinging
            logger.exception(f"Unexpected error while probing {self.url}: {e}")
            outcome = ProbeOutcome.transport_failure(
                ErrorType.REQUEST_FAILED, duration=0.0, error=str(e), attempts=0
            )
        finally:
            self.in_flight = False
        self.metrics_recorder.record(outcome)
        self.last_outcome = outcome
        return outcome

    async def _wait_for_shutdown(self, timeout: float) -> bool:
        """Block until shutdown is requested or the timeout expires; True on shutdown."""
        if timeout <= 0:
            return self.shutdown_event.is_set()
        try:
            await asyncio.wait_for(self.shutdown_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def run(self):
        loop = asyncio.get_running_loop()
        logger.info(f"Ping scheduler started: interval={self.interval}s")
        next_start = loop.time()
        while not self.shutdown_event.is_set():
            if await self._wait_for_shutdown(next_start - loop.time()):
                break
            started = loop.time()
            await self.ping_once()
            next_start = started + self.interval
        logger.info(f"Ping scheduler stopped after {self.probe_count} probes")

    def stop(self):
        self.shutdown_event.set()
