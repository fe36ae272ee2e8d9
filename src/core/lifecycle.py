import asyncio
import logging
import signal
from enum import Enum
from typing import Optional

import httpx

from config.config import Config
from core.metrics_recorder import MetricsRecorder
from core.prober import Prober
from core.retry_policy import RetryPolicy
from core.scheduler import PingScheduler
from core.uptime_ticker import UptimeTicker

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class Lifecycle:
    """
    Owns the process lifecycle: running -> draining -> stopped.

    While running, the metrics server and uptime ticker run in the background and
    the scheduler pings the target. A shutdown request (SIGINT/SIGTERM or
    request_shutdown()) stops new probes, drains the metrics server, and gives an
    in-flight probe the same drain window before it is abandoned.
    """

    def __init__(
        self,
        webhook_url: str,
        metrics_server,
        metrics_recorder: MetricsRecorder,
        interval: float = Config.PING_INTERVAL_SECONDS,
        retry_policy: Optional[RetryPolicy] = None,
        request_timeout: float = Config.REQUEST_TIMEOUT_SECONDS,
        drain_timeout: float = Config.SHUTDOWN_TIMEOUT_SECONDS,
        uptime_tick: float = Config.UPTIME_TICK_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.metrics_server = metrics_server
        self.metrics_recorder = metrics_recorder
        self.interval = interval
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = request_timeout
        self.drain_timeout = drain_timeout
        self.uptime_ticker = UptimeTicker(metrics_recorder, tick_interval=uptime_tick)
        self._transport = transport
        self.state: Optional[LifecycleState] = None
        self.shutdown_event = asyncio.Event()
        self.scheduler: Optional[PingScheduler] = None

    def request_shutdown(self, signame: Optional[str] = None):
        if self.state is not LifecycleState.RUNNING:
            return
        if signame:
            logger.info(f"Received {signame}, shutting down gracefully...")
        else:
            logger.info("Shutting down gracefully...")
        self.state = LifecycleState.DRAINING
        self.shutdown_event.set()

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop):
        for sig in HANDLED_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError):
                # Windows, or not running in the main thread
                logger.debug(f"Could not install handler for {sig.name}")

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop):
        for sig in HANDLED_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass

    async def run(self):
        loop = asyncio.get_running_loop()
        self.state = LifecycleState.RUNNING
        self._install_signal_handlers(loop)
        try:
            await self.metrics_server.start()
            await self.uptime_ticker.start()
            async with httpx.AsyncClient(
                timeout=self.request_timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                self.scheduler = PingScheduler(
                    url=self.webhook_url,
                    prober=Prober(client, retry_policy=self.retry_policy),
                    metrics_recorder=self.metrics_recorder,
                    interval=self.interval,
                    shutdown_event=self.shutdown_event,
                )
                scheduler_task = asyncio.create_task(self.scheduler.run())
                await self.shutdown_event.wait()
                await self._drain(scheduler_task)
        finally:
            self._remove_signal_handlers(loop)
            self.state = LifecycleState.STOPPED
            logger.info("pingbeat stopped")

    async def _drain(self, scheduler_task: asyncio.Task):
        await self.metrics_server.stop()
        try:
            await asyncio.wait_for(scheduler_task, timeout=self.drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Probe still in flight after {self.drain_timeout}s; abandoning it"
            )
        await self.uptime_ticker.stop()
