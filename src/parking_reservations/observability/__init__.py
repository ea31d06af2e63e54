# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability for the reservation engine.

Classes:
    UnifiedMetricsCollector: Dict snapshot plus optional Prometheus metrics.

Protocols:
    MetricsCollectorProtocol: Protocol for metrics collection backends.

Functions:
    get_metrics_collector: Get the global metrics collector singleton.
    reset_metrics_collector: Reset the global metrics collector singleton.

Constants:
    PROMETHEUS_AVAILABLE: Whether prometheus_client is available.
    All metric name constants from the constants module.
"""

from .collector import (
    METRIC_DEFINITIONS,
    PROMETHEUS_AVAILABLE,
    MetricDefinition,
    UnifiedMetricsCollector,
    get_metrics_collector,
    reset_metrics_collector,
)
from .constants import (
    ACTIVE_HOLDS,
    ACTIVE_SUBSCRIBERS,
    BACKEND_CONNECTION_ERRORS_TOTAL,
    BACKEND_LUA_EXECUTIONS_TOTAL,
    EVENTS_PUBLISHED_TOTAL,
    LATENCY_BUCKETS,
    LIFECYCLE_SWEEPS_TOTAL,
    METRIC_PREFIX,
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
from .protocols import MetricsCollectorProtocol

__all__ = [
    "ACTIVE_HOLDS",
    "ACTIVE_SUBSCRIBERS",
    "BACKEND_CONNECTION_ERRORS_TOTAL",
    "BACKEND_LUA_EXECUTIONS_TOTAL",
    "EVENTS_PUBLISHED_TOTAL",
    "LATENCY_BUCKETS",
    "LIFECYCLE_SWEEPS_TOTAL",
    "METRIC_DEFINITIONS",
    "METRIC_PREFIX",
    "PAYMENTS_RECORDED_TOTAL",
    "PERSISTENCE_FAILURES_TOTAL",
    "PERSISTENCE_LATENCY_SECONDS",
    "PERSISTENCE_RETRIES_TOTAL",
    "PRICE_BUCKETS",
    "PRICE_QUOTES_TOTAL",
    "PROMETHEUS_AVAILABLE",
    "QUOTED_PRICE",
    "RESERVATIONS_ACTIVATED_TOTAL",
    "RESERVATIONS_CANCELLED_TOTAL",
    "RESERVATIONS_COMPLETED_TOTAL",
    "RESERVATIONS_CREATED_TOTAL",
    "RESERVATION_CONFLICTS_TOTAL",
    "SUBSCRIBER_DELIVERY_ERRORS_TOTAL",
    "SUBSCRIBER_OVERFLOWS_TOTAL",
    "MetricDefinition",
    "MetricsCollectorProtocol",
    "UnifiedMetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
]
