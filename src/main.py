import argparse
import asyncio
import logging
import sys

from config.config import Config, resolve_env
from config.logging_config import setup_logging
from core.lifecycle import Lifecycle
from core.metrics_recorder import MetricsRecorder
from core.retry_policy import RetryPolicy
from server import MetricsServer, create_app

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="pingbeat",
        description="Ping a heartbeat URL on a fixed interval and expose Prometheus metrics.",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=Config.METRICS_PORT,
        help="port to listen on for metrics (default: %(default)s)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    webhook_url = resolve_env(Config.WEBHOOK_URL_ENV)
    if not webhook_url:
        logger.error(f"{Config.WEBHOOK_URL_ENV} is not set")
        return 1

    metrics_recorder = MetricsRecorder(namespace=Config.METRICS_NAMESPACE)
    metrics_server = MetricsServer(
        create_app(metrics_recorder),
        port=args.metrics_port,
        host=Config.METRICS_HOST,
        drain_timeout=Config.SHUTDOWN_TIMEOUT_SECONDS,
    )
    lifecycle = Lifecycle(
        webhook_url,
        metrics_server=metrics_server,
        metrics_recorder=metrics_recorder,
        interval=Config.PING_INTERVAL_SECONDS,
        retry_policy=RetryPolicy(
            max_attempts=Config.RETRY_MAX_ATTEMPTS,
            wait_min=Config.RETRY_WAIT_MIN_SECONDS,
            wait_max=Config.RETRY_WAIT_MAX_SECONDS,
        ),
        request_timeout=Config.REQUEST_TIMEOUT_SECONDS,
        drain_timeout=Config.SHUTDOWN_TIMEOUT_SECONDS,
    )
    asyncio.run(lifecycle.run())
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
