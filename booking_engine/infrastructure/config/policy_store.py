from __future__ import annotations

from booking_engine.application.ports.calendar_policy import CalendarPolicyPort
from booking_engine.application.ports.service_catalog import ServiceCatalogPort
from booking_engine.domain.entities.calendar_policy import CalendarPolicy
from booking_engine.domain.entities.service import Service


class StaticCalendarPolicyStore(CalendarPolicyPort):
    def __init__(self, policy: CalendarPolicy) -> None:
        self._policy = policy

    def get_policy(self, resource_id: str) -> CalendarPolicy:
        return self._policy


class ServiceCatalogStore(ServiceCatalogPort):
    def __init__(self, services: dict[str, Service]) -> None:
        self._services = dict(services)

    def get_service(self, service_id: str) -> Service | None:
        return self._services.get(service_id.strip())

    def list_services(self) -> list[Service]:
        return sorted(self._services.values(), key=lambda s: s.service_id)
