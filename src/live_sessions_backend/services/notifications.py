'''
Notification collaborator. Delivery is someone else's job; the engine only publishes events.
'''
from abc import ABC, abstractmethod

from ..common.logger import log
from ..models.booking import LifecycleEvent


class Notifier(ABC):

    @abstractmethod
    async def publish(self, event: LifecycleEvent) -> None:
        ...


class LoggingNotifier(Notifier):

    async def publish(self, event: LifecycleEvent) -> None:
        log.info(f"Event {event.type.value}: request={event.request_id} slot={event.slot_id} window={event.window_id}")


class InMemoryNotifier(Notifier):
    """Keeps every published event, in order."""

    def __init__(self):
        self.events: list[LifecycleEvent] = []

    async def publish(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.type.value for e in self.events]
