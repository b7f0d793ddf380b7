from abc import ABC, abstractmethod

from booking_engine.domain.entities.calendar_policy import CalendarPolicy


class CalendarPolicyPort(ABC):
    @abstractmethod
    def get_policy(self, resource_id: str) -> CalendarPolicy:
        """Return the calendar policy of the business that employs the resource."""
        raise NotImplementedError
