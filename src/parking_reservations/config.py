# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Runtime configuration for the reservation service.

Pricing tariffs live in PricingPolicy; this module covers persistence,
change-feed, lifecycle and metrics settings.
"""

from dataclasses import dataclass


@dataclass
class ReservationConfig:
    """Configuration for ReservationService and its components."""

    # === Persistence ===

    persistence_timeout: float = 5.0
    """Timeout in seconds for a single backend call."""

    persistence_retries: int = 1
    """Retries after a timed-out or failed backend call before giving up."""

    persistence_retry_backoff: float = 0.05
    """Base delay in seconds before a retry; doubled on each further attempt."""

    max_retry_backoff: float = 2.0
    """Upper bound on the retry delay in seconds."""

    # === Change Feed ===

    subscriber_queue_size: int = 256
    """Bounded queue length per subscriber before drop-and-resync."""

    event_replay_buffer: int = 1024
    """Number of recent events kept for replay to reconnecting subscribers."""

    # === Lifecycle ===

    lifecycle_sweep_interval: float = 60.0
    """Seconds between upcoming -> active -> completed sweeps."""

    enable_lifecycle_sweep: bool = True
    """Run the sweep as a background task while the service is started."""

    past_start_tolerance: float = 60.0
    """Seconds a window start may lie in the past before create rejects it."""

    reconcile_on_start: bool = True
    """Reconcile stale spot holds from persistence when the service starts."""

    # === Metrics and Monitoring ===

    metrics_enabled: bool = True
    """Enable metrics collection."""

    prometheus_enabled: bool = True
    """Mirror metrics into prometheus_client when it is installed."""

    start_prometheus_server: bool = False
    """Start the Prometheus HTTP exporter when the service starts."""

    prometheus_host: str = "127.0.0.1"
    """Prometheus metrics host."""

    prometheus_port: int = 9090
    """Prometheus metrics port."""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.persistence_timeout <= 0:
            raise ValueError("persistence_timeout must be positive")
        if self.persistence_retries < 0:
            raise ValueError("persistence_retries must not be negative")
        if self.persistence_retry_backoff < 0:
            raise ValueError("persistence_retry_backoff must not be negative")
        if self.max_retry_backoff < self.persistence_retry_backoff:
            raise ValueError(
                "max_retry_backoff must be at least persistence_retry_backoff"
            )
        if self.subscriber_queue_size < 1:
            raise ValueError("subscriber_queue_size must be at least 1")
        if self.event_replay_buffer < 0:
            raise ValueError("event_replay_buffer must not be negative")
        if self.lifecycle_sweep_interval <= 0:
            raise ValueError("lifecycle_sweep_interval must be positive")
        if self.past_start_tolerance < 0:
            raise ValueError("past_start_tolerance must not be negative")
        if not 0 < self.prometheus_port < 65536:
            raise ValueError("prometheus_port must be a valid TCP port")


__all__ = [
    "ReservationConfig",
]
