"""State change notifications for note store observers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from notecache.status import OperationKind

logger = logging.getLogger(__name__)


class StateEventType(Enum):
    """Parts of the note store state that observers can watch."""

    PAGE_CHANGED = "page_changed"
    TREE_CHANGED = "tree_changed"
    CURRENT_CHANGED = "current_changed"
    STATUS_CHANGED = "status_changed"


@dataclass(frozen=True, slots=True)
class StateEvent:
    """Immutable record of a state change.

    Attributes:
        event_type: Which part of the state changed.
        kind: The operation that caused the change, None for ``reset_status``.
        path: Path the operation targeted, when it had one.
    """

    event_type: StateEventType
    kind: OperationKind | None = None
    path: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class Subscription:
    """One observer attached to one part of the state.

    ``kind`` narrows delivery to events caused by a single operation; None
    receives every event of ``event_type``, including status resets.
    """

    event_type: StateEventType
    handler: Callable[[StateEvent], Awaitable[None]]
    kind: OperationKind | None = None

    def matches(self, event: StateEvent) -> bool:
        if event.event_type is not self.event_type:
            return False
        return self.kind is None or event.kind is self.kind


class EventBus:
    """Fans state events out to subscribed observers.

    Subscriptions are delivered in the order they were made.  A handler
    that raises is logged and skipped; delivery continues with the next
    subscription and the change that triggered the event stands.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        event_type: StateEventType,
        handler: Callable[[StateEvent], Awaitable[None]],
        *,
        kind: OperationKind | None = None,
    ) -> Callable[[], bool]:
        """Attach *handler* and return a callable that detaches it again.

        The returned callable answers True the first time it removes the
        subscription and False afterwards.
        """
        subscription = Subscription(event_type, handler, kind)
        self._subscriptions.append(subscription)
        return lambda: self._discard(subscription)

    def unsubscribe(
        self,
        event_type: StateEventType,
        handler: Callable[[StateEvent], Awaitable[None]],
    ) -> bool:
        """Detach the oldest subscription of *handler* to *event_type*."""
        for subscription in self._subscriptions:
            if subscription.event_type is event_type and subscription.handler == handler:
                return self._discard(subscription)
        return False

    async def emit(self, event: StateEvent) -> int:
        """Deliver *event* to every matching subscription.

        Returns the number of handlers that completed without raising.
        Subscriptions added or removed by a handler take effect from the
        next event.
        """
        delivered = 0
        for subscription in tuple(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                await subscription.handler(event)
            except Exception:
                logger.warning(
                    "Observer %r failed on %s (%s %r)",
                    subscription.handler,
                    event.event_type.value,
                    event.kind.value if event.kind is not None else "reset",
                    event.path,
                    exc_info=True,
                )
            else:
                delivered += 1
        return delivered

    def subscriber_count(self, event_type: StateEventType | None = None) -> int:
        """Number of live subscriptions, optionally for one event type."""
        if event_type is None:
            return len(self._subscriptions)
        return sum(1 for s in self._subscriptions if s.event_type is event_type)

    def clear(self) -> None:
        """Detach every subscription."""
        self._subscriptions.clear()

    def _discard(self, subscription: Subscription) -> bool:
        for index, candidate in enumerate(self._subscriptions):
            if candidate is subscription:
                del self._subscriptions[index]
                return True
        return False
