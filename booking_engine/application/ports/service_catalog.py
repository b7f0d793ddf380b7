from abc import ABC, abstractmethod

from booking_engine.domain.entities.service import Service


class ServiceCatalogPort(ABC):
    @abstractmethod
    def get_service(self, service_id: str) -> Service | None:
        raise NotImplementedError

    @abstractmethod
    def list_services(self) -> list[Service]:
        raise NotImplementedError
