"""In-process event bus for pushing store changes to live subscribers.

Every subscription is an explicit handle. The owner (usually a WebSocket
connection) cancels it on teardown; nothing is kept in ambient state
beyond the bus instance itself.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from renolink.common.logging import get_logger

logger = get_logger("events")

Callback = Callable[[dict[str, Any]], Awaitable[None]]


def user_topic(user_id: uuid.UUID | str) -> str:
    return f"user:{user_id}"


def conversation_topic(conversation_id: uuid.UUID | str) -> str:
    return f"conversation:{conversation_id}"


ADMIN_TOPIC = "admin"


class Subscription:
    """Cancellable handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, bus: EventBus, topic: str, callback: Callback):
        self.id = uuid.uuid4().hex[:12]
        self.topic = topic
        self.callback = callback
        self._bus = bus
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self._bus._remove(self)
            self.active = False

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info) -> None:
        self.cancel()


class EventBus:
    def __init__(self) -> None:
        self._subscriptions: dict[str, dict[str, Subscription]] = defaultdict(dict)

    def subscribe(self, topic: str, callback: Callback) -> Subscription:
        sub = Subscription(self, topic, callback)
        self._subscriptions[topic][sub.id] = sub
        logger.debug("Subscribed %s to %s", sub.id, topic)
        return sub

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscriptions.get(sub.topic)
        if subs is None:
            return
        subs.pop(sub.id, None)
        if not subs:
            del self._subscriptions[sub.topic]
        logger.debug("Unsubscribed %s from %s", sub.id, sub.topic)

    async def publish(self, topic: str, event: str, data: dict[str, Any]) -> int:
        """Deliver an event to every subscriber of ``topic``.

        Returns the number of subscribers that received it. A subscriber
        whose callback raises is cancelled.
        """
        subs = list(self._subscriptions.get(topic, {}).values())
        if not subs:
            return 0

        message = {
            "event": event,
            "topic": topic,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        delivered = 0
        for sub in subs:
            try:
                await sub.callback(message)
                delivered += 1
            except Exception as e:
                logger.warning("Dropping subscriber %s on %s: %s", sub.id, topic, e)
                sub.cancel()
        return delivered

    def subscriber_count(self, topic: str | None = None) -> int:
        if topic is not None:
            return len(self._subscriptions.get(topic, {}))
        return sum(len(subs) for subs in self._subscriptions.values())


bus = EventBus()

_PENDING = "pending_events"


def emit(db: AsyncSession, topic: str, event: str, data: dict[str, Any]) -> None:
    """Queue an event on the request session.

    Nothing reaches subscribers until the session commits and
    :func:`publish_pending` runs, so a rolled-back change is never announced.
    """
    db.info.setdefault(_PENDING, []).append((topic, event, data))


async def publish_pending(db: AsyncSession) -> int:
    delivered = 0
    for topic, event, data in db.info.pop(_PENDING, []):
        delivered += await bus.publish(topic, event, data)
    return delivered


def discard_pending(db: AsyncSession) -> None:
    db.info.pop(_PENDING, None)
