"""In-process publish/subscribe bus for inventory change events.

Delivery is best effort and at most once: a handler that raises is logged
and skipped, nothing is queued for late subscribers, and ``publish`` never
raises to the operation that emitted the event.
"""

import logging
import threading
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from library_api.utils.timezone import now_local

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    BORROW = "borrow"
    RETURN = "return"
    ADD_COPY = "addCopy"
    REMOVE_COPY = "removeCopy"
    EDIT_BOOK = "editBook"


class ChangeEvent(BaseModel):
    type: EventType
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=now_local)
    origin: Optional[str] = None  # node id of the notifier that emitted it


Handler = Callable[[ChangeEvent], None]


class Subscription:
    """Handle returned by ``ChangeNotifier.subscribe``."""

    def __init__(self, notifier: "ChangeNotifier", handler: Handler):
        self._notifier = notifier
        self.handler = handler
        self.active = True

    def close(self) -> None:
        if self.active:
            self._notifier._remove(self)
            self.active = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class ChangeNotifier:
    def __init__(self, node_id: Optional[str] = None):
        self.node_id = node_id or uuid.uuid4().hex[:12]
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler) -> Subscription:
        subscription = Subscription(self, handler)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def emit(self, event_type: EventType, **payload) -> ChangeEvent:
        """Build a locally originated event and publish it."""
        event = ChangeEvent(type=event_type, payload=payload, origin=self.node_id)
        self.publish(event)
        return event

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)

        logger.debug(f"Publishing {event.type.value} to {len(subscriptions)} subscriber(s)")
        for subscription in subscriptions:
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(f"Subscriber failed on {event.type.value} event: {e}", exc_info=True)
