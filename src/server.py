import asyncio
import contextlib
import logging

import uvicorn
from fastapi import FastAPI, Response
from fastapi.responses import PlainTextResponse

from core.metrics_recorder import MetricsRecorder

logger = logging.getLogger(__name__)


def create_app(metrics_recorder: MetricsRecorder) -> FastAPI:
    """
    Build the health/metrics application backed by the given recorder.
    """
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        # Liveness only: no dependency checks, independent of probe results
        return "OK"

    @app.get("/metrics")
    def metrics():
        return Response(
            metrics_recorder.render(), media_type=metrics_recorder.content_type
        )

    return app


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the owning process."""

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class MetricsServer:
    """
    Runs the health/metrics app with uvicorn inside the current event loop.
    """

    def __init__(
        self,
        app: FastAPI,
        port: int = 8080,
        host: str = "0.0.0.0",
        drain_timeout: float = 10.0,
    ):
        """
        Args:
            app (FastAPI): Application to serve.
            port (int): Port to listen on.
            host (str): Interface to bind.
            drain_timeout (float): Seconds in-flight requests get to finish on shutdown.
        """
        self.port = int(port)
        self.host = host
        self.drain_timeout = drain_timeout
        config = uvicorn.Config(
            app,
            host=host,
            port=self.port,
            log_config=None,
            lifespan="off",
            timeout_graceful_shutdown=drain_timeout,
        )
        self._server = _EmbeddedServer(config)
        self._task = None

    @property
    def started(self) -> bool:
        return self._server.started

    async def start(self):
        logger.info(f"Starting metrics server on {self.host}:{self.port}")
        self._task = asyncio.create_task(self._serve())

    async def _serve(self):
        try:
            await self._server.serve()
        except SystemExit:
            # uvicorn exits on startup failures such as a port already in use
            logger.error(f"Metrics server failed to start on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Metrics server failed: {e}")

    async def stop(self):
        """
        Stop accepting connections, let in-flight requests drain, then force-close.
        """
        if self._task is None:
            return
        self._server.should_exit = True
        try:
            # uvicorn enforces the drain window itself; allow a little slack before forcing
            await asyncio.wait_for(asyncio.shield(self._task), timeout=self.drain_timeout + 1.0)
            logger.info("Metrics server stopped.")
        except asyncio.TimeoutError:
            logger.error(
                f"Failed to shutdown metrics server within {self.drain_timeout}s; forcing close"
            )
            self._server.force_exit = True
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
