# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `parking_rsv_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`
    - Gauges use present-tense descriptive names

Label Best Practices:
    Only bounded, categorical labels are used:
    - `spot_type` - standard, compact, accessible, electric
    - `reason` - overlap, disabled, version
    - `operation` - commit, load, list, reconcile
    - `event_type` - created, cancelled, activated, ...

    NEVER use `reservation_id`, `user_id` or `spot_id` as labels; they are
    unbounded.

Usage:
    >>> from parking_reservations.observability.constants import (
    ...     RESERVATIONS_CREATED_TOTAL,
    ... )
    >>> print(RESERVATIONS_CREATED_TOTAL)
    'parking_rsv_reservations_created_total'
"""


# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "parking_rsv"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Reservation Lifecycle (manager/reservation_manager.py)
# =============================================================================

RESERVATIONS_CREATED_TOTAL = f"{METRIC_PREFIX}_reservations_created_total"
"""Total reservations committed."""

RESERVATIONS_CANCELLED_TOTAL = f"{METRIC_PREFIX}_reservations_cancelled_total"
"""Total reservations cancelled by their owner."""

RESERVATIONS_ACTIVATED_TOTAL = f"{METRIC_PREFIX}_reservations_activated_total"
"""Total reservations whose window started."""

RESERVATIONS_COMPLETED_TOTAL = f"{METRIC_PREFIX}_reservations_completed_total"
"""Total reservations whose window elapsed."""

RESERVATION_CONFLICTS_TOTAL = f"{METRIC_PREFIX}_reservation_conflicts_total"
"""Total create attempts rejected because the spot was not free."""

PAYMENTS_RECORDED_TOTAL = f"{METRIC_PREFIX}_payments_recorded_total"
"""Total payment confirmations stored."""

LIFECYCLE_SWEEPS_TOTAL = f"{METRIC_PREFIX}_lifecycle_sweeps_total"
"""Total iterations of the lifecycle sweep loop."""


# =============================================================================
# Inventory (inventory/spot_inventory.py)
# =============================================================================

ACTIVE_HOLDS = f"{METRIC_PREFIX}_active_holds"
"""Number of live holds across all spots."""


# =============================================================================
# Persistence (manager/reservation_manager.py, backends/redis.py)
# =============================================================================

PERSISTENCE_RETRIES_TOTAL = f"{METRIC_PREFIX}_persistence_retries_total"
"""Total persistence calls retried after a timeout or backend error."""

PERSISTENCE_FAILURES_TOTAL = f"{METRIC_PREFIX}_persistence_failures_total"
"""Total persistence calls that failed after retrying."""

PERSISTENCE_LATENCY_SECONDS = f"{METRIC_PREFIX}_persistence_latency_seconds"
"""Persistence call latency (histogram)."""

BACKEND_LUA_EXECUTIONS_TOTAL = f"{METRIC_PREFIX}_backend_lua_executions_total"
"""Total Lua script executions (Redis backend)."""

BACKEND_CONNECTION_ERRORS_TOTAL = f"{METRIC_PREFIX}_backend_connection_errors_total"
"""Total backend connection errors."""


# =============================================================================
# Change Feed (notifications/notifier.py)
# =============================================================================

EVENTS_PUBLISHED_TOTAL = f"{METRIC_PREFIX}_events_published_total"
"""Total change events published."""

SUBSCRIBER_OVERFLOWS_TOTAL = f"{METRIC_PREFIX}_subscriber_overflows_total"
"""Total subscriber queue overflows (queue dropped and resync sent)."""

SUBSCRIBER_DELIVERY_ERRORS_TOTAL = (
    f"{METRIC_PREFIX}_subscriber_delivery_errors_total"
)
"""Total exceptions raised by subscriber handlers."""

ACTIVE_SUBSCRIBERS = f"{METRIC_PREFIX}_active_subscribers"
"""Number of live subscriptions."""


# =============================================================================
# Pricing (pricing/calculator.py)
# =============================================================================

PRICE_QUOTES_TOTAL = f"{METRIC_PREFIX}_price_quotes_total"
"""Total price quotes computed."""

QUOTED_PRICE = f"{METRIC_PREFIX}_quoted_price"
"""Distribution of quoted final prices in whole currency units (histogram)."""


# =============================================================================
# Histogram Buckets
# =============================================================================

LATENCY_BUCKETS: list[float] = [
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
]
"""Persistence latency buckets (in seconds)."""

PRICE_BUCKETS: list[float] = [
    25.0,
    50.0,
    100.0,
    200.0,
    400.0,
    800.0,
    1600.0,
    3200.0,
]
"""Quoted price buckets (whole currency units, up to a full day)."""


__all__ = [
    "ACTIVE_HOLDS",
    "ACTIVE_SUBSCRIBERS",
    "BACKEND_CONNECTION_ERRORS_TOTAL",
    "BACKEND_LUA_EXECUTIONS_TOTAL",
    "EVENTS_PUBLISHED_TOTAL",
    "LATENCY_BUCKETS",
    "LIFECYCLE_SWEEPS_TOTAL",
    "METRIC_PREFIX",
    "PAYMENTS_RECORDED_TOTAL",
    "PERSISTENCE_FAILURES_TOTAL",
    "PERSISTENCE_LATENCY_SECONDS",
    "PERSISTENCE_RETRIES_TOTAL",
    "PRICE_BUCKETS",
    "PRICE_QUOTES_TOTAL",
    "QUOTED_PRICE",
    "RESERVATIONS_ACTIVATED_TOTAL",
    "RESERVATIONS_CANCELLED_TOTAL",
    "RESERVATIONS_COMPLETED_TOTAL",
    "RESERVATIONS_CREATED_TOTAL",
    "RESERVATION_CONFLICTS_TOTAL",
    "SUBSCRIBER_DELIVERY_ERRORS_TOTAL",
    "SUBSCRIBER_OVERFLOWS_TOTAL",
]
