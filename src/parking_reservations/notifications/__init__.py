# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""In-process change feed and idempotent event consumers."""

from .notifier import ChangeNotifier, EventFilter, EventHandler, Subscription
from .projection import EventProjection

__all__ = [
    "ChangeNotifier",
    "EventFilter",
    "EventHandler",
    "EventProjection",
    "Subscription",
]
