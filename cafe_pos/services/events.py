"""Order event publication.

Services publish typed events to an injected ``EventBus`` after their
transaction commits. Delivery is the subscribers' business:

- ``EventLog`` keeps a bounded, sequence-numbered history that dashboards
  poll through ``GET /api/v1/events?after=<seq>``.
- ``RedisEventRelay`` republishes each event on a redis pub/sub channel when
  ``REDIS_URL`` is configured.

A failing subscriber is logged and skipped. It never undoes or fails the
write that produced the event.
"""

import json
import logging
import threading
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Any, Callable, Deque, Dict, List, Optional

import redis

from cafe_pos.models.order import Order
from cafe_pos.schemas.order import OrderResponse

logger = logging.getLogger(__name__)

ORDER_CREATED = "order-created"
ORDER_UPDATED = "order-updated"

EventHandler = Callable[[str, Dict[str, Any]], None]


def order_payload(order: Order) -> Dict[str, Any]:
    """Full denormalized order: customer, items with menu items, payment, staff."""
    return OrderResponse.model_validate(order).model_dump(mode="json")


class EventBus:
    """In-process publish/subscribe for domain events."""

    def __init__(self):
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._catch_all: List[EventHandler] = []

    def subscribe(self, event: str, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        self._catch_all.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._catch_all:
            self._catch_all.remove(handler)
        for handlers in self._handlers.values():
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: str, payload: Dict[str, Any]) -> int:
        """Deliver ``payload`` to every subscriber. Returns how many succeeded."""
        delivered = 0
        for handler in [*self._handlers.get(event, []), *self._catch_all]:
            try:
                handler(event, payload)
                delivered += 1
            except Exception:
                logger.exception(f"Event handler {handler!r} failed for '{event}'")
        return delivered

    def publish_order(self, event: str, order: Order) -> int:
        """Publish ``order`` as a denormalized payload. Returns 0 if it cannot be serialized."""
        try:
            payload = order_payload(order)
        except Exception:
            logger.exception(f"Could not build '{event}' payload for order {order.id}")
            return 0
        return self.publish(event, payload)


class EventLog:
    """Bounded history of published events for polling clients."""

    def __init__(self, maxlen: int = 500):
        self._events: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._seq = 0
        self._lock = threading.Lock()

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            self._seq += 1
            self._events.append({
                "seq": self._seq,
                "event": event,
                "payload": payload,
                "emitted_at": datetime.now(timezone.utc),
            })

    @property
    def last_seq(self) -> int:
        return self._seq

    def since(self, after: int = 0, limit: int = 100) -> List[Dict[str, Any]]:
        """Events with a sequence number greater than ``after``, oldest first."""
        with self._lock:
            events = [e for e in self._events if e["seq"] > after]
        return events[:limit]


class RedisEventRelay:
    """Bus subscriber that forwards events to a redis pub/sub channel."""

    def __init__(self, client: "redis.Redis", channel: str):
        self._client = client
        self.channel = channel

    @classmethod
    def from_url(cls, redis_url: str, channel: str) -> Optional["RedisEventRelay"]:
        """Connect to redis, or return None when it is unreachable."""
        try:
            client = redis.from_url(redis_url, socket_connect_timeout=2)
            client.ping()
        except redis.RedisError as e:
            logger.warning(f"Redis unavailable, order events stay in-process: {e}")
            return None
        logger.info(f"Relaying order events to redis channel '{channel}'")
        return cls(client, channel)

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        message = json.dumps({"event": event, "payload": payload}, default=str)
        self._client.publish(self.channel, message)
