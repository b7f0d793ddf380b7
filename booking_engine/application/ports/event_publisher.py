from abc import ABC, abstractmethod

from booking_engine.domain.entities.events import AppointmentEvent


class EventPublisherPort(ABC):
    @abstractmethod
    def publish(self, event: AppointmentEvent) -> None:
        """Hand a lifecycle event to downstream collaborators (notifications, calendar sync)."""
        raise NotImplementedError
