from abc import ABC, abstractmethod
from datetime import datetime, tzinfo


class ClockPort(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current business-local wall time (naive datetime)."""
        raise NotImplementedError

    @property
    @abstractmethod
    def timezone(self) -> tzinfo:
        """Zone the business-local wall time is expressed in."""
        raise NotImplementedError
