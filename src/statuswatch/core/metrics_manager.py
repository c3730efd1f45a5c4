import logging
import time
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from statuswatch.contracts.probe_result import ProbeResult, ServiceStatus

logger = logging.getLogger(__name__)


class MetricsManager:
    """
    Manager for collecting and reporting service metrics: request load on the
    status endpoint, probe outcomes and cache effectiveness.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the MetricsManager and set up Prometheus metrics.

        Args:
            registry: Collector registry the metrics are registered with. Defaults
                to the global prometheus_client registry; tests pass a private one
                so several managers can coexist in one process.
        """
        self.registry = registry if registry is not None else REGISTRY
        self.IN_FLIGHT = Gauge(
            "statuswatch_requests_in_flight",
            "Number of requests in flight",
            registry=self.registry,
        )
        self.REQ_LATENCY = Histogram(
            "statuswatch_request_latency_seconds",
            "Request latency in seconds",
            registry=self.registry,
        )
        self.PROBES = Counter(
            "statuswatch_probes_total",
            "Probes issued, by resulting status",
            ["status"],
            registry=self.registry,
        )
        self.PROBE_FAILURES = Counter(
            "statuswatch_probe_failures_total",
            "Failed probes, by classified failure reason",
            ["reason"],
            registry=self.registry,
        )
        self.PROBE_LATENCY = Histogram(
            "statuswatch_probe_latency_seconds",
            "Latency of successful probes in seconds",
            registry=self.registry,
        )
        self.CACHE_HITS = Counter(
            "statuswatch_cache_hits_total",
            "Targets answered from the result cache",
            registry=self.registry,
        )
        self.CACHE_MISSES = Counter(
            "statuswatch_cache_misses_total",
            "Targets that required a fresh probe",
            registry=self.registry,
        )
        logger.info("MetricsManager initialized.")

    async def prometheus_middleware(self, request, call_next):
        """
        Middleware for tracking request metrics and updating Prometheus gauges/histograms.

        Args:
            request: The incoming request object.
            call_next: The next handler in the middleware chain.

        Returns:
            The response object from the next handler.
        """
        start = time.time()
        self.IN_FLIGHT.inc()
        try:
            response = await call_next(request)
            return response
        finally:
            elapsed = time.time() - start
            self.IN_FLIGHT.dec()
            self.REQ_LATENCY.observe(elapsed)
            logger.debug(
                f"Request processed in {elapsed:.4f}s. In-flight: {self.get_in_flight()}"
            )

    def get_in_flight(self):
        """
        Get the current number of in-flight requests.

        Returns:
            float: Number of in-flight requests.
        """
        return self.IN_FLIGHT._value.get()

    def record_probe(self, result: ProbeResult):
        self.PROBES.labels(status=result.status.value).inc()
        if result.status == ServiceStatus.ONLINE:
            self.PROBE_LATENCY.observe(result.latency_ms / 1000.0)

    def record_probe_failure(self, reason: str):
        self.PROBE_FAILURES.labels(reason=reason).inc()

    def record_cache_hit(self):
        self.CACHE_HITS.inc()

    def record_cache_miss(self):
        self.CACHE_MISSES.inc()
