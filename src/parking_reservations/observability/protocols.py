# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol for metrics collection backends.

Components accept any object satisfying MetricsCollectorProtocol, so callers
can plug in StatsD or OpenTelemetry adapters instead of the bundled
UnifiedMetricsCollector.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricsCollectorProtocol(Protocol):
    """
    Counter, gauge and histogram sink used throughout the engine.

    Example:
        >>> class NullCollector:
        ...     def inc_counter(self, name, value=1, labels=None): pass
        ...     def set_gauge(self, name, value, labels=None): pass
        ...     def inc_gauge(self, name, value=1.0, labels=None): pass
        ...     def dec_gauge(self, name, value=1.0, labels=None): pass
        ...     def observe_histogram(self, name, value, labels=None): pass
        ...     def get_metrics(self): return {}
        ...     def reset(self): pass
        >>>
        >>> isinstance(NullCollector(), MetricsCollectorProtocol)
        True
    """

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
        ...

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def inc_gauge(
        self,
        name: str,
        value: float = 1.0,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def dec_gauge(
        self,
        name: str,
        value: float = 1.0,
        labels: dict[str, str] | None = None,
    ) -> None: ...

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Record one observation (latency, price) in a histogram."""
        ...

    def get_metrics(self) -> dict[str, Any]:
        """Snapshot as {"counters": ..., "gauges": ..., "histograms": ...}."""
        ...

    def reset(self) -> None: ...


__all__ = [
    "MetricsCollectorProtocol",
]
