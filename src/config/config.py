import logging
import os

logger = logging.getLogger(__name__)


def resolve_env(key: str) -> str:
    """
    Resolve an environment variable, following secret-file indirection.

    If the raw value is an absolute path that exists (e.g. a mounted
    Docker/Kubernetes secret), the trimmed file contents are returned instead.

    Args:
        key (str): Name of the environment variable.

    Returns:
        str: The trimmed value, or an empty string if unset or unreadable.
    """
    value = os.environ.get(key, "")
    if value.startswith("/") and os.path.exists(value):
        try:
            with open(value, "r", encoding="utf-8") as secret_file:
                return secret_file.read().strip()
        except OSError as e:
            logger.error(f"Failed to read secret file for {key} at {value}: {e}")
            return ""
    return value.strip()


class Config:
    """
    Configuration class for environment variables and default settings.
    """

    # Name of the variable holding the heartbeat target (or a path to a secret file)
    WEBHOOK_URL_ENV = "WEBHOOK_URL"

    METRICS_PORT = os.environ.get("METRICS_PORT", "8080")
    METRICS_HOST = os.environ.get("METRICS_HOST", "0.0.0.0")
    # Optional metric name prefix, e.g. "goping"
    METRICS_NAMESPACE = os.environ.get("METRICS_NAMESPACE", "")

    PING_INTERVAL_SECONDS = float(
        os.environ.get("PING_INTERVAL_SECONDS", str(15 * 60))
    )  # 15 minutes

    RETRY_MAX_ATTEMPTS = int(os.environ.get("RETRY_MAX_ATTEMPTS", "5"))
    RETRY_WAIT_MIN_SECONDS = float(os.environ.get("RETRY_WAIT_MIN_SECONDS", "2"))
    RETRY_WAIT_MAX_SECONDS = float(os.environ.get("RETRY_WAIT_MAX_SECONDS", "10"))
    REQUEST_TIMEOUT_SECONDS = float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "30"))

    # Drain window for the metrics server on shutdown
    SHUTDOWN_TIMEOUT_SECONDS = float(os.environ.get("SHUTDOWN_TIMEOUT_SECONDS", "10"))

    UPTIME_TICK_SECONDS = 1.0
