"""Event Bus - in-process subscription to committed contract events

Indexers and UIs learn about marketplace activity only through events.
The World publishes each event here after the invocation that emitted it
has committed; subscribers never see events from reverted invocations.

Event types emitted by the contracts:
- offered: Marketplace item listed
- bought: Marketplace item purchased
- Transfer: Collection token moved (mint included)
- Approval: Collection single-token approval set
- ApprovalForAll: Collection operator approval set or revoked
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Wildcard event type - receives every event
ALL_EVENTS: str = "*"

STANDARD_EVENT_TYPES = [
    "offered",
    "bought",
    "Transfer",
    "Approval",
    "ApprovalForAll",
]

EventCallback = Callable[[dict[str, Any]], None]


@dataclass
class Subscription:
    """A registered callback"""
    subscription_id: str
    event_type: str
    callback: EventCallback
    contract: str | None = None  # Only events from this address, if set
    filter: dict[str, Any] = field(default_factory=dict)

    def matches(self, event: dict[str, Any]) -> bool:
        """Whether this subscription wants the event."""
        if self.event_type != ALL_EVENTS and event.get("event_type") != self.event_type:
            return False
        if self.contract is not None and event.get("contract") != self.contract:
            return False
        args = event.get("args", {})
        return all(args.get(k) == v for k, v in self.filter.items())


class EventBus:
    """Fire-and-forget publisher of committed events.

    A failing subscriber is logged and skipped. It never affects other
    subscribers or the state that produced the event.
    """

    _subscriptions: dict[str, Subscription]
    _next_id: int

    def __init__(self) -> None:
        self._subscriptions = {}
        self._next_id = 0

    def subscribe(
        self,
        event_type: str,
        callback: EventCallback,
        contract: str | None = None,
        filter: dict[str, Any] | None = None,
    ) -> str:
        """Register a callback and return its subscription id.

        Args:
            event_type: Event name to receive, or "*" for all events
            callback: Called with the event record
            contract: Only receive events emitted by this contract address
            filter: Only receive events whose args contain these values
        """
        if not event_type:
            raise ValueError("event_type is required")
        self._next_id += 1
        subscription_id = f"subscription_{self._next_id}_{event_type}"
        self._subscriptions[subscription_id] = Subscription(
            subscription_id=subscription_id,
            event_type=event_type,
            callback=callback,
            contract=contract,
            filter=dict(filter or {}),
        )
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove a subscription. Returns False if it did not exist."""
        return self._subscriptions.pop(subscription_id, None) is not None

    def list_subscriptions(self) -> list[dict[str, Any]]:
        """Describe active subscriptions."""
        return [
            {
                "subscription_id": s.subscription_id,
                "event_type": s.event_type,
                "contract": s.contract,
                "filter": dict(s.filter),
            }
            for s in self._subscriptions.values()
        ]

    def list_event_types(self) -> list[str]:
        """Event types the contracts emit."""
        return list(STANDARD_EVENT_TYPES)

    def publish(self, event: dict[str, Any]) -> int:
        """Deliver an event to every matching subscriber.

        Returns:
            Number of subscribers that handled the event without raising
        """
        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if not subscription.matches(event):
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(
                    "Subscriber %s failed on %s event",
                    subscription.subscription_id,
                    event.get("event_type"),
                )
                continue
            delivered += 1
        return delivered
