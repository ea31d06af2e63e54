# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
ChangeNotifier: in-process change feed for committed reservation events.

publish() never blocks and never raises because of a slow or failing
subscriber. Each subscription owns a bounded asyncio.Queue and a delivery
task; when the queue is full it is emptied and a single RESYNC event is
queued instead, telling the consumer to re-list current state.

Delivery is at-least-once. Reconnecting consumers pass the last sequence
number they processed as `replay_after` and receive every buffered event
published after it (possibly including events they already saw).
"""

import asyncio
import inspect
import itertools
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..observability.constants import (
    ACTIVE_SUBSCRIBERS,
    EVENTS_PUBLISHED_TOTAL,
    SUBSCRIBER_DELIVERY_ERRORS_TOTAL,
    SUBSCRIBER_OVERFLOWS_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from ..types.events import EntityKind, EventType, ReservationEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[ReservationEvent], Awaitable[None] | None]


@dataclass(frozen=True)
class EventFilter:
    """
    Restricts which events a subscription receives.

    None fields match everything. RESYNC events always pass.
    """

    event_types: frozenset[EventType] | None = None
    user_id: str | None = None
    spot_id: str | None = None

    def matches(self, event: ReservationEvent) -> bool:
        if event.event_type is EventType.RESYNC:
            return True
        if self.event_types is not None and event.event_type not in self.event_types:
            return False
        if self.user_id is not None and event.user_id != self.user_id:
            return False
        return self.spot_id is None or event.spot_id == self.spot_id


class Subscription:
    """A registered consumer with its own queue and delivery task."""

    def __init__(
        self,
        notifier: "ChangeNotifier",
        subscription_id: str,
        handler: EventHandler,
        event_filter: EventFilter | None,
        queue_size: int,
    ) -> None:
        self.subscription_id = subscription_id
        self.event_filter = event_filter or EventFilter()
        self._notifier = notifier
        self._handler = handler
        self._queue: asyncio.Queue[ReservationEvent] = asyncio.Queue(maxsize=queue_size)
        self._task: asyncio.Task[None] | None = None

        self.delivered = 0
        self.errors = 0
        self.overflows = 0
        self.last_sequence = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(
            self._deliver_loop(), name=f"subscription-{self.subscription_id}"
        )

    def _offer(self, event: ReservationEvent) -> None:
        """Queue an event without blocking; on overflow drop all and resync."""
        if not self.event_filter.matches(event):
            return
        try:
            self._queue.put_nowait(event)
            return
        except asyncio.QueueFull:
            pass

        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1
        self.overflows += 1
        self._notifier._record_overflow(self, dropped)
        self._queue.put_nowait(self._notifier._resync_event(self.subscription_id))

    async def _deliver_loop(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                result = self._handler(event)
                if inspect.isawaitable(result):
                    await result
                self.delivered += 1
                self.last_sequence = max(self.last_sequence, event.sequence)
            except Exception:
                self.errors += 1
                self._notifier._record_delivery_error(self, event)
            finally:
                self._queue.task_done()

    async def wait_idle(self) -> None:
        """Wait until every queued event has been handled."""
        if self.active:
            await self._queue.join()

    def unsubscribe(self) -> None:
        """Stop delivery. Queued events are discarded. Idempotent."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._notifier._remove(self)

    async def aclose(self) -> None:
        """Unsubscribe and wait for the delivery task to finish."""
        task = self._task
        self.unsubscribe()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)


class ChangeNotifier:
    """
    Broadcasts committed state changes to subscribers.

    Callers publish only after a successful commit and while still holding
    the spot lock, so per-entity event order equals commit order.
    """

    def __init__(
        self,
        queue_size: int = 256,
        replay_buffer: int = 1024,
        metrics_collector: MetricsCollectorProtocol | None = None,
    ) -> None:
        self._queue_size = queue_size
        self._replay: deque[ReservationEvent] = deque(maxlen=replay_buffer)
        self._metrics = metrics_collector
        self._subscriptions: dict[str, Subscription] = {}
        self._sequence = 0
        self._ids = itertools.count(1)

    @property
    def last_sequence(self) -> int:
        return self._sequence

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, event: ReservationEvent) -> ReservationEvent:
        """
        Assign the next sequence number and fan the event out.

        Returns:
            The event as delivered, with its sequence set
        """
        self._sequence += 1
        event = event.with_sequence(self._sequence)
        self._replay.append(event)

        for subscription in list(self._subscriptions.values()):
            subscription._offer(event)

        if self._metrics is not None:
            self._metrics.inc_counter(
                EVENTS_PUBLISHED_TOTAL, labels={"event_type": event.event_type.value}
            )
        logger.debug(
            "Published %s #%d for %s %s v%d",
            event.event_type.value,
            event.sequence,
            event.entity_kind.value,
            event.entity_id,
            event.version,
        )
        return event

    def subscribe(
        self,
        handler: EventHandler,
        event_filter: EventFilter | None = None,
        replay_after: int | None = None,
    ) -> Subscription:
        """
        Register a handler. Must be called from a running event loop.

        Args:
            handler: Sync or async callable receiving each event. Exceptions
                are logged and counted, never propagated.
            event_filter: Optional restriction on delivered events
            replay_after: Redeliver buffered events with a greater sequence.
                If events after it were already evicted from the buffer, a
                RESYNC is delivered first.

        Returns:
            The Subscription; call unsubscribe() to stop delivery
        """
        subscription = Subscription(
            self,
            subscription_id=f"sub-{next(self._ids)}",
            handler=handler,
            event_filter=event_filter,
            queue_size=self._queue_size,
        )
        self._subscriptions[subscription.subscription_id] = subscription
        subscription._start()

        if replay_after is not None:
            oldest = self._replay[0].sequence if self._replay else self._sequence + 1
            if replay_after < oldest - 1:
                subscription._offer(self._resync_event(subscription.subscription_id))
            for event in self._replay:
                if event.sequence > replay_after:
                    subscription._offer(event)

        if self._metrics is not None:
            self._metrics.set_gauge(ACTIVE_SUBSCRIBERS, len(self._subscriptions))
        logger.debug(
            "Subscription %s registered (replay_after=%s)",
            subscription.subscription_id,
            replay_after,
        )
        return subscription

    async def flush(self) -> None:
        """Wait until every subscription has handled its queued events."""
        await asyncio.gather(
            *(s.wait_idle() for s in list(self._subscriptions.values()))
        )

    async def close(self) -> None:
        """Stop every subscription."""
        subscriptions = list(self._subscriptions.values())
        await asyncio.gather(*(s.aclose() for s in subscriptions))
        logger.debug("ChangeNotifier closed %d subscriptions", len(subscriptions))

    # Callbacks from Subscription

    def _resync_event(self, subscription_id: str) -> ReservationEvent:
        return ReservationEvent(
            event_type=EventType.RESYNC,
            entity_kind=EntityKind.STREAM,
            entity_id=subscription_id,
            version=0,
            sequence=self._sequence,
        )

    def _remove(self, subscription: Subscription) -> None:
        if self._subscriptions.pop(subscription.subscription_id, None) is None:
            return
        if self._metrics is not None:
            self._metrics.set_gauge(ACTIVE_SUBSCRIBERS, len(self._subscriptions))
        logger.debug("Subscription %s removed", subscription.subscription_id)

    def _record_overflow(self, subscription: Subscription, dropped: int) -> None:
        logger.warning(
            "Subscription %s overflowed; dropped %d events and queued resync",
            subscription.subscription_id,
            dropped,
        )
        if self._metrics is not None:
            self._metrics.inc_counter(SUBSCRIBER_OVERFLOWS_TOTAL)

    def _record_delivery_error(
        self, subscription: Subscription, event: ReservationEvent
    ) -> None:
        logger.exception(
            "Subscription %s handler failed on %s #%d",
            subscription.subscription_id,
            event.event_type.value,
            event.sequence,
        )
        if self._metrics is not None:
            self._metrics.inc_counter(SUBSCRIBER_DELIVERY_ERRORS_TOTAL)


__all__ = [
    "ChangeNotifier",
    "EventFilter",
    "EventHandler",
    "Subscription",
]
