import asyncio
import logging

from core.metrics_recorder import MetricsRecorder

logger = logging.getLogger(__name__)


class UptimeTicker:
    """
    Independent timer that bumps the uptime counter once per tick, regardless of probe activity.
    """

    def __init__(self, metrics_recorder: MetricsRecorder, tick_interval: float = 1.0):
        self.metrics_recorder = metrics_recorder
        self.tick_interval = tick_interval
        self.ticks = 0
        self._task = None
        self._running = False

    async def start(self):
        """
        Start the tick loop as an asynchronous task.
        """
        self._running = True
        self._task = asyncio.create_task(self._tick_loop())
        logger.info("Uptime ticker started.")

    async def stop(self):
        """
        Stop the tick loop and wait for its task to finish.
        """
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info(f"Uptime ticker stopped after {self.ticks} ticks.")

    async def _tick_loop(self):
        loop = asyncio.get_running_loop()
        # Schedule against absolute deadlines so ticks do not drift
        next_tick = loop.time() + self.tick_interval
        while self._running:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            self.metrics_recorder.tick_uptime()
            self.ticks += 1
            next_tick += self.tick_interval
