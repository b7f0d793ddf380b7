from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date, time
from pathlib import Path
from typing import Any

from booking_engine.domain.entities.calendar_policy import (
    WEEKDAYS,
    BreakInterval,
    CalendarPolicy,
    DayHours,
    ResourceCalendar,
)
from booking_engine.domain.entities.service import Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessConfig:
    policy: CalendarPolicy
    services: dict[str, Service]


def default_business_config() -> BusinessConfig:
    weekday = DayHours(open=time(9, 0), close=time(17, 0))
    weekend = DayHours(open=time(9, 0), close=time(17, 0), closed=True)
    policy = CalendarPolicy(
        weekly_hours=(weekday,) * 5 + (weekend,) * 2,
        breaks=(BreakInterval(start=time(12, 0), end=time(13, 0)),),
    )
    services = {
        "consultation": Service(service_id="consultation", name="Consultation", duration_minutes=30),
        "standard": Service(service_id="standard", name="Standard appointment", duration_minutes=60),
    }
    return BusinessConfig(policy=policy, services=services)


def load_business_config(path: str | Path) -> BusinessConfig:
    """Load calendar policy and service catalog from a JSON file."""
    file_path = Path(path)
    with open(file_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    try:
        config = parse_business_config(data)
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid business config {file_path}: {e}") from e

    logger.info(
        "Business config loaded",
        extra={"reason": str(file_path), "services": len(config.services)},
    )
    return config


def parse_business_config(data: dict[str, Any]) -> BusinessConfig:
    calendar = data.get("calendar", {})
    resources = {
        str(resource_id): ResourceCalendar(
            weekly_hours=_parse_weekly_hours(entry.get("working_hours") or entry.get("weekly_hours") or []),
            blocked_dates=_parse_dates(entry.get("blocked_dates", [])),
        )
        for resource_id, entry in (calendar.get("resources") or {}).items()
    }
    policy = CalendarPolicy(
        weekly_hours=_parse_weekly_hours(calendar.get("working_hours") or calendar.get("weekly_hours") or []),
        blocked_dates=_parse_dates(calendar.get("blocked_dates", [])),
        breaks=tuple(
            BreakInterval(start=_parse_time(b["start"]), end=_parse_time(b["end"]))
            for b in calendar.get("breaks", [])
        ),
        resources=resources,
    )
    services = {}
    for entry in data.get("services", []):
        service = Service(
            service_id=str(entry["id"]),
            name=entry.get("name", str(entry["id"])),
            duration_minutes=int(entry.get("duration_minutes", entry.get("duration", 0))),
            description=entry.get("description"),
        )
        services[service.service_id] = service
    return BusinessConfig(policy=policy, services=services)


def _parse_weekly_hours(entries: list[dict[str, Any]]) -> tuple[DayHours, ...]:
    if not entries:
        return ()
    if any("day" in e for e in entries):
        by_day = {str(e["day"]).lower(): e for e in entries}
        missing = [d for d in WEEKDAYS if d not in by_day]
        if missing:
            raise ValueError(f"Working hours missing days: {', '.join(missing)}")
        entries = [by_day[d] for d in WEEKDAYS]
    return tuple(_parse_day(e) for e in entries)


def _parse_day(entry: dict[str, Any]) -> DayHours:
    closed = bool(entry.get("closed", entry.get("isClosed", False)))
    return DayHours(
        open=_parse_time(entry.get("open") or "00:00"),
        close=_parse_time(entry.get("close") or "00:00"),
        closed=closed,
    )


def _parse_time(value: str) -> time:
    return time.fromisoformat(value)


def _parse_dates(values: list[str]) -> frozenset[date]:
    return frozenset(date.fromisoformat(v) for v in values)
