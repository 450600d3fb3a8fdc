"""A synchronous event bus used by the monitoring and dependency graph plugins.

Events must be registered before they can be subscribed to or instrumented.
Subscribers may filter on payload values:

    notifications = Notifications()
    notifications.register_event("monitoring")
    notifications.subscribe("monitoring", print, target="mailer")
    notifications.instrument("monitoring", target="mailer", method="deliver")
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import structlog

from systema.errors import UnknownEventError

__all__ = ["Notifications", "Subscription"]

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class Subscription:
    """A callback for one event, called only for payloads matching ``filters``."""

    callback: Callable[[dict[str, Any]], Any]
    filters: dict[str, Any] = field(default_factory=dict)

    def matches(self, payload: dict[str, Any]) -> bool:
        return all(
            name in payload and payload[name] == value for name, value in self.filters.items()
        )


class Notifications:
    def __init__(self, name: Optional[str] = None):
        self.name = name
        self._subscriptions: dict[str, list[Subscription]] = {}

    def register_event(self, event: str) -> "Notifications":
        self._subscriptions.setdefault(event, [])
        return self

    def registered(self, event: str) -> bool:
        return event in self._subscriptions

    def subscribe(self, event: str, callback: Callable, **filters) -> Subscription:
        """Call ``callback`` with the payload of every matching ``event``.

        Raises:
            UnknownEventError: If ``event`` was never registered.
        """
        subscription = Subscription(callback, filters)
        self._event(event).append(subscription)
        return subscription

    def unsubscribe(self, event: str, subscription: Subscription) -> "Notifications":
        subscriptions = self._event(event)
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        return self

    def instrument(self, event: str, **payload) -> dict[str, Any]:
        """Publish ``payload`` to the matching subscribers of ``event``, in subscription order."""
        subscriptions = [s for s in self._event(event) if s.matches(payload)]
        logger.debug("notifications.instrument", event=event, subscribers=len(subscriptions))
        for subscription in subscriptions:
            subscription.callback(payload)
        return payload

    def _event(self, event: str) -> list[Subscription]:
        try:
            return self._subscriptions[event]
        except KeyError:
            raise UnknownEventError(event) from None
