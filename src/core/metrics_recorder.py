import logging
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    disable_created_metrics,
    generate_latest,
)

from contracts.probe_outcome import OutcomeKind, ProbeOutcome

logger = logging.getLogger(__name__)

# Exposition carries only the four ping series, no *_created gauges
disable_created_metrics()


class MetricsRecorder:
    """
    Records probe outcomes and process uptime as Prometheus metrics.

    Each recorder owns its CollectorRegistry, so several instances (e.g. in tests)
    never collide on metric names. prometheus_client metrics lock internally, so
    record/tick_uptime/render are safe to call from any task or thread.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self, registry: Optional[CollectorRegistry] = None, namespace: str = ""
    ):
        """
        Initialize the MetricsRecorder and register its metrics.

        Args:
            registry (CollectorRegistry): Registry to register on; a private one is created if omitted.
            namespace (str): Optional prefix for every metric name.
        """
        self.registry = registry if registry is not None else CollectorRegistry()
        self.namespace = namespace
        self.REQUESTS = Counter(
            "requests",
            "Total number of ping requests made",
            ["status"],
            namespace=namespace,
            registry=self.registry,
        )
        self.REQUEST_DURATION = Histogram(
            "request_duration_seconds",
            "Duration of ping requests in seconds",
            ["status"],
            namespace=namespace,
            registry=self.registry,
        )
        self.ERRORS = Counter(
            "errors",
            "Total number of ping errors",
            ["error_type"],
            namespace=namespace,
            registry=self.registry,
        )
        self.UPTIME = Counter(
            "uptime_seconds",
            "Total uptime of the application in seconds",
            namespace=namespace,
            registry=self.registry,
        )
        logger.info("MetricsRecorder initialized.")

    def record(self, outcome: ProbeOutcome):
        """
        Record one probe outcome.

        Args:
            outcome (ProbeOutcome): The classified probe result.
        """
        self.REQUESTS.labels(status=outcome.label).inc()
        self.REQUEST_DURATION.labels(status=outcome.label).observe(outcome.duration)
        if outcome.kind is OutcomeKind.TRANSPORT_FAILURE and outcome.error_type:
            self.ERRORS.labels(error_type=outcome.error_type.value).inc()
        logger.debug(
            f"Recorded probe outcome {outcome.label} (status_code={outcome.status_code}, "
            f"duration={outcome.duration:.4f}s)"
        )

    def tick_uptime(self):
        self.UPTIME.inc()

    def render(self) -> bytes:
        """
        Render all metrics in the Prometheus text exposition format.
        """
        return generate_latest(self.registry)

    def _full_name(self, name: str) -> str:
        return f"{self.namespace}_{name}" if self.namespace else name

    def get_sample(self, name: str, labels: Optional[dict] = None) -> float:
        """
        Get the current value of one exposed sample, e.g. ``requests_total``.

        Returns:
            float: The sample value, or 0.0 if it has not been observed yet.
        """
        value = self.registry.get_sample_value(self._full_name(name), labels or {})
        return value if value is not None else 0.0

    def get_request_count(self, status: str) -> float:
        return self.get_sample("requests_total", {"status": status})

    def get_error_count(self, error_type: str) -> float:
        return self.get_sample("errors_total", {"error_type": error_type})

    def get_uptime(self) -> float:
        return self.get_sample("uptime_seconds_total")
