"""
In-process event sink with per-session subscriptions.

Unlike a queued event bus, the hub awaits subscribers inline from the
emitting relay loop, so events for one session reach every subscriber in the
order they were emitted.
"""

import asyncio
import fnmatch
import logging
import time
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from ..domain.events import SessionEvent
from ..interfaces.sessions import IEventSink

logger = logging.getLogger(__name__)

EventHandler = Callable[[SessionEvent], Any]


class EventSubscription:
    """Represents an event subscription."""

    def __init__(self, subscription_id: str, session_pattern: str, handler: EventHandler):
        self.subscription_id = subscription_id
        self.session_pattern = session_pattern
        self.handler = handler
        self.created_at = time.time()
        self.call_count = 0
        self.error_count = 0


class SessionEventHub(IEventSink):
    """
    Fan-out event sink keyed by session identifier.

    Subscribe with an exact session id, or with a wildcard pattern such as
    ``"*"`` to observe every session.
    """

    def __init__(self) -> None:
        self._subscriptions: Dict[str, List[EventSubscription]] = defaultdict(list)
        self._wildcard_subscriptions: List[EventSubscription] = []
        self._metrics: Dict[str, int] = {
            'events_emitted': 0,
            'deliveries': 0,
            'delivery_failures': 0
        }

    async def emit(self, event: SessionEvent) -> None:
        """Deliver an event to every matching subscriber, in subscription order."""
        self._metrics['events_emitted'] += 1

        for subscription in self._matching(event.session_id):
            try:
                result = subscription.handler(event)
                if asyncio.iscoroutine(result):
                    await result
                subscription.call_count += 1
                self._metrics['deliveries'] += 1
            except Exception as e:
                subscription.error_count += 1
                self._metrics['delivery_failures'] += 1
                logger.error(f"Subscriber {subscription.subscription_id} failed on {event.topic}: {e}")

    def subscribe(self, session_pattern: str, handler: EventHandler) -> str:
        """
        Subscribe to events of sessions matching the pattern.

        Args:
            session_pattern: Session id, or a pattern with ``*``/``?`` wildcards
            handler: Sync or async callable receiving each event

        Returns:
            Subscription ID for unsubscribing
        """
        subscription = EventSubscription(str(uuid.uuid4()), session_pattern, handler)

        if '*' in session_pattern or '?' in session_pattern:
            self._wildcard_subscriptions.append(subscription)
        else:
            self._subscriptions[session_pattern].append(subscription)

        logger.debug(f"Added subscription for '{session_pattern}' (ID: {subscription.subscription_id})")
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription; returns whether it existed."""
        for session_id, subscriptions in list(self._subscriptions.items()):
            for i, subscription in enumerate(subscriptions):
                if subscription.subscription_id == subscription_id:
                    subscriptions.pop(i)
                    if not subscriptions:
                        del self._subscriptions[session_id]
                    return True

        for i, subscription in enumerate(self._wildcard_subscriptions):
            if subscription.subscription_id == subscription_id:
                self._wildcard_subscriptions.pop(i)
                return True

        return False

    def subscription_count(self, session_id: Optional[str] = None) -> int:
        if session_id is None:
            return sum(len(subs) for subs in self._subscriptions.values()) + len(self._wildcard_subscriptions)
        return len(self._matching(session_id))

    def get_metrics(self) -> Dict[str, Any]:
        return {**self._metrics, 'subscriptions': self.subscription_count()}

    def _matching(self, session_id: str) -> List[EventSubscription]:
        matching = list(self._subscriptions.get(session_id, ()))
        matching.extend(
            subscription for subscription in self._wildcard_subscriptions
            if fnmatch.fnmatchcase(session_id, subscription.session_pattern)
        )
        return matching
