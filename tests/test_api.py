from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from booking_engine.infrastructure.clock.fixed_clock import FixedClock
from booking_engine.main import app
from booking_engine.wiring import dependencies

from conftest import SATURDAY, TUESDAY, at


@pytest.fixture
def client(clock, catalog, availability, coordinator, lifecycle):
    app.dependency_overrides[dependencies.get_clock] = lambda: clock
    app.dependency_overrides[dependencies.get_service_catalog] = lambda: catalog
    app.dependency_overrides[dependencies.get_availability_use_case] = lambda: availability
    app.dependency_overrides[dependencies.get_reservation_coordinator] = lambda: coordinator
    app.dependency_overrides[dependencies.get_lifecycle] = lambda: lifecycle
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _reserve(client, start, key=None, **extra):
    body = {
        "resource_id": "alice",
        "service_id": "consultation",
        "start": start.isoformat(),
        "customer": {"name": "Ada Lovelace", "email": "ada@example.com"},
        **extra,
    }
    headers = {"Idempotency-Key": key} if key else {}
    return client.post("/api/v1/appointments", json=body, headers=headers)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_availability_lists_free_slots(client):
    resp = client.get(
        "/api/v1/resources/alice/availability",
        params={"date": TUESDAY.isoformat(), "service_id": "consultation"},
    )

    assert resp.status_code == 200
    slots = resp.json()["slots"]
    assert len(slots) == 14
    assert slots[0] == {"start": "2030-01-08T09:00:00", "end": "2030-01-08T09:30:00"}


def test_availability_unknown_service(client):
    resp = client.get(
        "/api/v1/resources/alice/availability",
        params={"date": TUESDAY.isoformat(), "service_id": "massage"},
    )

    assert resp.status_code == 404
    assert resp.json()["detail"]["error"] == "not_found"


def test_available_dates_default_to_today(client):
    resp = client.get("/api/v1/resources/alice/available-dates", params={"service_id": "consultation", "days": 7})

    assert resp.status_code == 200
    assert resp.json()["dates"] == ["2030-01-07", "2030-01-08", "2030-01-09", "2030-01-10", "2030-01-11"]


def test_reserve_then_replay(client):
    first = _reserve(client, at(TUESDAY, 10), key="abc")
    replay = _reserve(client, at(TUESDAY, 10), key="abc")

    assert first.status_code == 201
    assert first.json()["created"] is True
    assert first.json()["appointment"]["status"] == "scheduled"
    assert "confirmation_token" not in first.json()["appointment"]
    assert replay.status_code == 200
    assert replay.json()["appointment"]["id"] == first.json()["appointment"]["id"]


def test_reserve_conflict_and_unavailable(client):
    assert _reserve(client, at(TUESDAY, 10)).status_code == 201

    conflict = _reserve(client, at(TUESDAY, 10))
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["error"] == "conflict"

    closed = _reserve(client, at(SATURDAY, 10))
    assert closed.status_code == 409
    assert closed.json()["detail"]["error"] == "slot_unavailable"


def test_reserve_rejects_inverted_range(client):
    resp = _reserve(client, at(TUESDAY, 10), end=at(TUESDAY, 9).isoformat())

    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "validation_error"


def test_confirm_and_cancel_flow(client, store, clock):
    appointment_id = _reserve(client, at(TUESDAY, 15)).json()["appointment"]["id"]
    token = store.get(appointment_id).confirmation_token

    confirmed = client.post("/api/v1/appointments/confirm", json={"token": token})
    assert confirmed.status_code == 200
    assert confirmed.json()["appointment"]["status"] == "confirmed"
    assert confirmed.json()["already_confirmed"] is False

    again = client.post("/api/v1/appointments/confirm", json={"token": token})
    assert again.status_code == 200
    assert again.json()["already_confirmed"] is True

    clock.set(at(TUESDAY, 15) - timedelta(hours=5))
    late = client.post(f"/api/v1/appointments/{appointment_id}/cancel", json={"actor": "customer"})
    assert late.status_code == 409
    assert late.json()["detail"]["error"] == "cancellation_window_closed"

    done = client.post(f"/api/v1/appointments/{appointment_id}/complete")
    assert done.status_code == 200
    assert client.get(f"/api/v1/appointments/{appointment_id}").json()["status"] == "completed"


def test_confirm_expired_token(client, store, clock):
    appointment_id = _reserve(client, at(TUESDAY, 15)).json()["appointment"]["id"]
    token = store.get(appointment_id).confirmation_token
    clock.advance(hours=49)

    resp = client.post("/api/v1/appointments/confirm", json={"token": token})

    assert resp.status_code == 410
    assert resp.json()["detail"]["error"] == "token_expired"


def test_cancel_without_body_defaults_to_customer(client):
    appointment_id = _reserve(client, at(TUESDAY, 15)).json()["appointment"]["id"]

    resp = client.post(f"/api/v1/appointments/{appointment_id}/cancel")

    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancelled_by"] == "customer"


def test_no_show_requires_confirmation(client):
    appointment_id = _reserve(client, at(TUESDAY, 15)).json()["appointment"]["id"]

    resp = client.post(f"/api/v1/appointments/{appointment_id}/no-show")

    assert resp.status_code == 409
    assert resp.json()["detail"]["error"] == "invalid_transition"


def test_resource_appointments(client):
    _reserve(client, at(TUESDAY, 11))
    _reserve(client, at(TUESDAY, 9))

    resp = client.get("/api/v1/resources/alice/appointments", params={"date": TUESDAY.isoformat()})

    assert [a["start_time"] for a in resp.json()] == ["2030-01-08T09:00:00", "2030-01-08T11:00:00"]


def test_unknown_appointment(client):
    assert client.get("/api/v1/appointments/nope").status_code == 404


def test_list_services(client):
    resp = client.get("/api/v1/services")

    assert resp.status_code == 200
    assert [(s["id"], s["duration_minutes"]) for s in resp.json()] == [("consultation", 30), ("standard", 60)]


def test_reserve_converts_offset_times_to_business_time(client, clock):
    app.dependency_overrides[dependencies.get_clock] = lambda: FixedClock(clock.now(), ZoneInfo("America/New_York"))

    resp = _reserve(client, datetime(2030, 1, 8, 15, tzinfo=timezone.utc))

    assert resp.status_code == 201
    assert resp.json()["appointment"]["start_time"] == "2030-01-08T10:00:00"
    assert resp.json()["appointment"]["end_time"] == "2030-01-08T10:30:00"
