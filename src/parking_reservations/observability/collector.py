# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Unified metrics collector for the reservation engine.

The collector keeps an in-process snapshot of every counter, gauge and
histogram (always available, JSON friendly) and mirrors updates into
prometheus_client metrics when that package is installed.

Usage:
    >>> from parking_reservations.observability.collector import get_metrics_collector
    >>> collector = get_metrics_collector()
    >>> collector.inc_counter('parking_rsv_reservations_created_total',
    ...                       labels={'spot_type': 'standard'})
    >>> metrics = collector.get_metrics()

Thread Safety:
    The Prometheus HTTP exporter scrapes from its own thread, so the snapshot
    is guarded by an RLock rather than an asyncio lock.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
)

from .constants import (
    ACTIVE_HOLDS,
    ACTIVE_SUBSCRIBERS,
    BACKEND_CONNECTION_ERRORS_TOTAL,
    BACKEND_LUA_EXECUTIONS_TOTAL,
    EVENTS_PUBLISHED_TOTAL,
    LATENCY_BUCKETS,
    LIFECYCLE_SWEEPS_TOTAL,
    PAYMENTS_RECORDED_TOTAL,
    PERSISTENCE_FAILURES_TOTAL,
    PERSISTENCE_LATENCY_SECONDS,
    PERSISTENCE_RETRIES_TOTAL,
    PRICE_BUCKETS,
    PRICE_QUOTES_TOTAL,
    QUOTED_PRICE,
    RESERVATION_CONFLICTS_TOTAL,
    RESERVATIONS_ACTIVATED_TOTAL,
    RESERVATIONS_CANCELLED_TOTAL,
    RESERVATIONS_COMPLETED_TOTAL,
    RESERVATIONS_CREATED_TOTAL,
    SUBSCRIBER_DELIVERY_ERRORS_TOTAL,
    SUBSCRIBER_OVERFLOWS_TOTAL,
)

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from prometheus_client import (
        CollectorRegistry as CollectorRegistryType,
        Counter as CounterType,
        Gauge as GaugeType,
        Histogram as HistogramType,
    )
else:
    CounterType = object
    GaugeType = object
    HistogramType = object
    CollectorRegistryType = object

try:
    from prometheus_client import (
        REGISTRY as _REGISTRY,
        Counter as _Counter,
        Gauge as _Gauge,
        Histogram as _Histogram,
        start_http_server as _start_http_server,
    )

    Counter: type[CounterType] | None = _Counter
    Gauge: type[GaugeType] | None = _Gauge
    Histogram: type[HistogramType] | None = _Histogram
    REGISTRY: CollectorRegistryType | None = _REGISTRY
    start_http_server: Callable[..., Any] | None = _start_http_server
    PROMETHEUS_AVAILABLE = True
except ImportError:
    Counter = None
    Gauge = None
    Histogram = None
    REGISTRY = None
    start_http_server = None
    PROMETHEUS_AVAILABLE = False


@dataclass
class MetricDefinition:
    """Schema of a pre-declared metric: type, help text, labels and buckets."""

    name: str
    metric_type: str  # 'counter', 'gauge', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


def _counter(name: str, description: str, *labels: str) -> MetricDefinition:
    return MetricDefinition(name, "counter", description, labels)


def _gauge(name: str, description: str, *labels: str) -> MetricDefinition:
    return MetricDefinition(name, "gauge", description, labels)


METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    d.name: d
    for d in (
        # === Reservation lifecycle ===
        _counter(RESERVATIONS_CREATED_TOTAL, "Total reservations created", "spot_type"),
        _counter(
            RESERVATIONS_CANCELLED_TOTAL, "Total reservations cancelled", "spot_type"
        ),
        _counter(RESERVATIONS_ACTIVATED_TOTAL, "Total reservations activated"),
        _counter(RESERVATIONS_COMPLETED_TOTAL, "Total reservations completed"),
        _counter(
            RESERVATION_CONFLICTS_TOTAL, "Total reservation conflicts", "reason"
        ),
        _counter(PAYMENTS_RECORDED_TOTAL, "Total payments recorded"),
        _counter(LIFECYCLE_SWEEPS_TOTAL, "Total lifecycle sweep iterations"),
        _gauge(ACTIVE_HOLDS, "Live spot holds"),
        # === Persistence ===
        _counter(
            PERSISTENCE_RETRIES_TOTAL, "Total persistence retries", "operation"
        ),
        _counter(
            PERSISTENCE_FAILURES_TOTAL,
            "Total persistence failures",
            "operation",
            "reason",
        ),
        MetricDefinition(
            PERSISTENCE_LATENCY_SECONDS,
            "histogram",
            "Persistence call latency",
            ("operation",),
            buckets=LATENCY_BUCKETS,
        ),
        _counter(
            BACKEND_LUA_EXECUTIONS_TOTAL,
            "Total Lua script executions",
            "script_name",
        ),
        _counter(
            BACKEND_CONNECTION_ERRORS_TOTAL,
            "Total backend connection errors",
            "error_type",
        ),
        # === Change feed ===
        _counter(EVENTS_PUBLISHED_TOTAL, "Total events published", "event_type"),
        _counter(SUBSCRIBER_OVERFLOWS_TOTAL, "Total subscriber queue overflows"),
        _counter(
            SUBSCRIBER_DELIVERY_ERRORS_TOTAL, "Total subscriber handler errors"
        ),
        _gauge(ACTIVE_SUBSCRIBERS, "Live change feed subscriptions"),
        # === Pricing ===
        _counter(PRICE_QUOTES_TOTAL, "Total price quotes", "spot_type"),
        MetricDefinition(
            QUOTED_PRICE,
            "histogram",
            "Quoted final price",
            ("spot_type",),
            buckets=PRICE_BUCKETS,
        ),
    )
}


class UnifiedMetricsCollector:
    """
    Dict snapshot plus optional Prometheus mirroring for all engine metrics.

    At most MAX_LABEL_COMBINATIONS distinct label sets are tracked per metric;
    further combinations are dropped with a warning.

    Example:
        >>> collector = UnifiedMetricsCollector(enable_prometheus=False)
        >>> collector.inc_counter('parking_rsv_price_quotes_total',
        ...                       labels={'spot_type': 'compact'})
        >>> collector.get_metrics()["counters"]
        {'parking_rsv_price_quotes_total': {'spot_type=compact': 1}}
    """

    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000
    MAX_HISTOGRAM_SAMPLES: ClassVar[int] = 10000

    def __init__(
        self,
        enable_prometheus: bool = True,
        registry: Any | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Mirror into prometheus_client (if installed)
            registry: Optional Prometheus CollectorRegistry, mainly for tests
        """
        self._enable_prometheus = enable_prometheus and PROMETHEUS_AVAILABLE
        self._registry = registry if registry is not None else REGISTRY

        self._counters: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._gauges: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._label_combinations: dict[str, set[str]] = defaultdict(set)
        self._lock = threading.RLock()

        self._prom_metrics: dict[str, Any] = {}
        self._server_running = False

        logger.debug(
            "UnifiedMetricsCollector initialized (prometheus=%s)",
            "enabled" if self._enable_prometheus else "disabled",
        )

    @staticmethod
    def _labels_to_key(labels: dict[str, str] | None) -> str:
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _admit(self, name: str, label_key: str) -> bool:
        """Record the label combination, or refuse it past the cardinality cap."""
        seen = self._label_combinations[name]
        if label_key in seen:
            return True
        if len(seen) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                "Cardinality limit (%d) reached for metric %s, dropping labels %s",
                self.MAX_LABEL_COMBINATIONS,
                name,
                label_key,
            )
            return False
        seen.add(label_key)
        return True

    def _prom_metric(self, name: str, metric_type: str) -> Any | None:
        """Get or lazily register the Prometheus metric backing `name`."""
        if not self._enable_prometheus:
            return None
        if name in self._prom_metrics:
            return self._prom_metrics[name]

        factory = {"counter": Counter, "gauge": Gauge, "histogram": Histogram}[
            metric_type
        ]
        if factory is None:
            return None

        defn = METRIC_DEFINITIONS.get(name)
        if defn is None or defn.metric_type != metric_type:
            defn = MetricDefinition(name, metric_type, f"Dynamic {metric_type}: {name}")

        kwargs: dict[str, Any] = {"registry": self._registry}
        if metric_type == "histogram":
            kwargs["buckets"] = defn.buckets or LATENCY_BUCKETS
        try:
            metric = factory(name, defn.description, list(defn.label_names), **kwargs)
        except ValueError as e:
            # Duplicate registration in a shared registry.
            logger.warning("Failed to register Prometheus %s %s: %s", metric_type, name, e)
            metric = None
        self._prom_metrics[name] = metric
        return metric

    def _mirror(
        self,
        name: str,
        metric_type: str,
        method: str,
        value: float,
        labels: dict[str, str] | None,
    ) -> None:
        metric = self._prom_metric(name, metric_type)
        if metric is None:
            return
        try:
            target = metric.labels(**labels) if labels else metric
            getattr(target, method)(value)
        except (ValueError, TypeError) as e:
            logger.debug("Prometheus %s.%s failed for %s: %s", metric_type, method, name, e)

    # === Counter Operations ===

    def inc_counter(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit(name, label_key):
                return
            self._counters[name][label_key] += value
        self._mirror(name, "counter", "inc", value, labels)

    # === Gauge Operations ===

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit(name, label_key):
                return
            self._gauges[name][label_key] = value
        self._mirror(name, "gauge", "set", value, labels)

    def inc_gauge(
        self,
        name: str,
        value: float = 1.0,
        labels: dict[str, str] | None = None,
    ) -> None:
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit(name, label_key):
                return
            self._gauges[name][label_key] += value
        self._mirror(name, "gauge", "inc", value, labels)

    def dec_gauge(
        self,
        name: str,
        value: float = 1.0,
        labels: dict[str, str] | None = None,
    ) -> None:
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit(name, label_key):
                return
            self._gauges[name][label_key] -= value
        self._mirror(name, "gauge", "dec", value, labels)

    # === Histogram Operations ===

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        label_key = self._labels_to_key(labels)
        with self._lock:
            if not self._admit(name, label_key):
                return
            samples = self._histograms[name][label_key]
            samples.append(value)
            if len(samples) > self.MAX_HISTOGRAM_SAMPLES:
                del samples[: len(samples) // 2]
        self._mirror(name, "histogram", "observe", value, labels)

    # === Snapshot Operations ===

    def get_metrics(self) -> dict[str, Any]:
        """
        Snapshot all metrics.

        Returns:
            {"counters": {name: {label_key: value}},
             "gauges": {name: {label_key: value}},
             "histograms": {name: {label_key: {count, sum, avg, min, max}}}}
        """
        with self._lock:
            counters = {name: dict(values) for name, values in self._counters.items()}
            gauges = {name: dict(values) for name, values in self._gauges.items()}
            histograms: dict[str, dict[str, dict[str, Any]]] = {}
            for name, by_label in self._histograms.items():
                histograms[name] = {
                    label_key: {
                        "count": len(samples),
                        "sum": sum(samples),
                        "avg": sum(samples) / len(samples),
                        "min": min(samples),
                        "max": max(samples),
                    }
                    for label_key, samples in by_label.items()
                    if samples
                }
        return {"counters": counters, "gauges": gauges, "histograms": histograms}

    def counter_value(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Current value of one counter series (0 when never incremented)."""
        with self._lock:
            return self._counters.get(name, {}).get(self._labels_to_key(labels), 0)

    def gauge_value(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._gauges.get(name, {}).get(self._labels_to_key(labels), 0.0)

    # === Lifecycle ===

    def reset(self) -> None:
        """Clear the dict snapshot; Prometheus series are left untouched."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._label_combinations.clear()
        logger.debug("Metrics collector reset")

    # === Prometheus HTTP Server ===

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus scrape endpoint in a daemon thread.

        Binds to localhost by default; pass host="0.0.0.0" explicitly for
        container deployments.

        Returns:
            True if the server is running after the call
        """
        if not PROMETHEUS_AVAILABLE or start_http_server is None:
            logger.warning(
                "Cannot start Prometheus server: prometheus_client not installed"
            )
            return False
        if self._server_running:
            return True
        try:
            start_http_server(port, addr=host, registry=self._registry)
        except OSError as e:
            logger.error("Failed to start Prometheus server on %s:%d: %s", host, port, e)
            return False
        self._server_running = True
        logger.info("Prometheus metrics server started on %s:%d", host, port)
        return True

    @property
    def prometheus_available(self) -> bool:
        return PROMETHEUS_AVAILABLE

    @property
    def prometheus_enabled(self) -> bool:
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        return self._server_running


# =============================================================================
# Singleton Pattern
# =============================================================================

_global_collector: UnifiedMetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector(
    enable_prometheus: bool = True,
) -> UnifiedMetricsCollector:
    """
    Get or create the process-wide collector.

    Args:
        enable_prometheus: Only honoured by the first call
    """
    global _global_collector

    if _global_collector is None:
        with _collector_lock:
            if _global_collector is None:
                _global_collector = UnifiedMetricsCollector(
                    enable_prometheus=enable_prometheus
                )
    return _global_collector


def reset_metrics_collector() -> None:
    """Drop the process-wide collector (tests only)."""
    global _global_collector
    with _collector_lock:
        if _global_collector:
            _global_collector.reset()
        _global_collector = None


__all__ = [
    "METRIC_DEFINITIONS",
    "PROMETHEUS_AVAILABLE",
    "MetricDefinition",
    "UnifiedMetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
]
