"""
In-process publish/subscribe bus with hierarchical, dot-separated topics.

A subscription to ``"A.B"`` receives publications to ``"A.B"`` and
``"A.B.C"`` but not to ``"A.Bx"`` or ``"A"``; ``"*"`` receives everything.
Delivery is synchronous, in subscription order, and nothing is buffered for
later subscribers.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional, Union

from .types import InvalidArgumentError
from .utils import is_topic_specified_by

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Any], Any]


class EventSubscription:
    """Handle returned by ``subscribe``. Be sure to call ``unsubscribe``."""

    def __init__(self, bus: "PubSubEventService", topics: List[str], callback: Subscriber):
        self.topics = tuple(topics)
        self.callback = callback
        self._bus = bus
        self.active = True

    def unsubscribe(self) -> None:
        """Remove the subscription. Safe to call more than once."""
        if self.active:
            self.active = False
            self._bus._remove(self)

    def __repr__(self) -> str:
        return f"EventSubscription(topics={list(self.topics)}, active={self.active})"


class PubSubEventService:
    """A subscriber registry; construct one per application or per test"""

    def __init__(self):
        self._subscriptions: List[EventSubscription] = []

    def subscribe(self, topics: Union[str, Iterable[str]], callback: Subscriber) -> EventSubscription:
        """
        Subscribe ``callback(topic, payload)`` to one or more topics.

        Returns:
            An EventSubscription whose ``unsubscribe()`` removes the callback
        """
        topic_list = [topics] if isinstance(topics, str) else list(topics)
        if not topic_list or not all(isinstance(t, str) and t for t in topic_list):
            raise InvalidArgumentError("topics must be one or more non-empty strings")
        if not callable(callback):
            raise InvalidArgumentError("callback must be callable")

        subscription = EventSubscription(self, topic_list, callback)
        self._subscriptions.append(subscription)
        return subscription

    def publish(self, topic: str, payload: Any) -> bool:
        """
        Deliver ``payload`` to every subscription covering ``topic``.

        Subscribers may subscribe or unsubscribe while being called; a
        subscription removed during delivery receives nothing further and one
        added during delivery only sees later publications.

        Returns:
            True if any subscriber was called
        """
        targets = [s for s in self._subscriptions if is_topic_specified_by(s.topics, topic)]
        delivered = 0
        for subscription in targets:
            if subscription.active:
                subscription.callback(topic, payload)
                delivered += 1
        return delivered > 0

    def has_subscribers(self, topic: str) -> bool:
        return any(is_topic_specified_by(s.topics, topic) for s in self._subscriptions)

    def clear_subscriptions(self, topic: Optional[str] = None,
                            callback: Optional[Subscriber] = None) -> int:
        """
        Remove subscriptions by exact subscribed topic and/or callback.
        With no arguments every subscription is removed.

        Returns:
            Number of subscriptions removed
        """
        removed = [
            s for s in self._subscriptions
            if (topic is None or topic in s.topics) and (callback is None or s.callback == callback)
        ]
        for subscription in removed:
            subscription.unsubscribe()
        if removed:
            logger.debug(f"Removed {len(removed)} subscription(s) (topic={topic})")
        return len(removed)

    def _remove(self, subscription: EventSubscription) -> None:
        # rebind rather than mutate so an in-progress publish keeps its snapshot
        self._subscriptions = [s for s in self._subscriptions if s is not subscription]

    @staticmethod
    def is_topic_specified_by(subscribed: Union[str, Iterable[str]], published: str) -> bool:
        return is_topic_specified_by(subscribed, published)
