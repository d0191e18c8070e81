"""Change notifications for observers such as the room map"""
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional
from uuid import UUID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationsChanged:
    hotel_id: str
    action: str
    reservation_id: Optional[UUID] = None


Subscriber = Callable[[ReservationsChanged], Any]


class EventPublisher:
    """Fire-and-forget publisher: a failing subscriber never fails the operation"""

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> Callable[[], None]:
        """Register a sync or async handler; returns an unsubscribe callable"""
        self._subscribers.append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return unsubscribe

    async def publish(self, event: ReservationsChanged) -> None:
        for handler in list(self._subscribers):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Subscriber %r failed on %s", handler, event)
