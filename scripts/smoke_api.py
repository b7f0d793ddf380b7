#!/usr/bin/env python3
"""Smoke script for the booking API against a running server."""

import sys
from datetime import date, datetime, time, timedelta

import httpx


BASE_URL = "http://127.0.0.1:8001"
RESOURCE_ID = "front-desk"
SERVICE_ID = "consultation"


def next_weekday(today: date) -> date:
    day = today + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def check_availability(day: date) -> str | None:
    """Fetch open slots and return the first start time."""
    print("=" * 60)
    print(f"Testing GET /api/v1/resources/{RESOURCE_ID}/availability")
    print("=" * 60)

    try:
        response = httpx.get(
            f"{BASE_URL}/api/v1/resources/{RESOURCE_ID}/availability",
            params={"date": day.isoformat(), "service_id": SERVICE_ID},
            timeout=10.0,
        )
        response.raise_for_status()
        slots = response.json()["slots"]
        print(f"✅ {len(slots)} slots on {day.isoformat()}")
        for s in slots[:5]:
            print(f"  {s['start']} - {s['end']}")
        return slots[0]["start"] if slots else None
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return None


def reserve(start: str) -> str | None:
    """Reserve a slot twice with one idempotency key; the second call must replay."""
    print("\n" + "=" * 60)
    print("Testing POST /api/v1/appointments")
    print("=" * 60)

    payload = {
        "resource_id": RESOURCE_ID,
        "service_id": SERVICE_ID,
        "start": start,
        "customer": {"name": "Smoke Test", "email": "smoke@example.com"},
    }
    key = f"smoke-{datetime.now().timestamp()}"

    try:
        first = httpx.post(f"{BASE_URL}/api/v1/appointments", json=payload, headers={"Idempotency-Key": key})
        first.raise_for_status()
        replay = httpx.post(f"{BASE_URL}/api/v1/appointments", json=payload, headers={"Idempotency-Key": key})
        replay.raise_for_status()
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return None

    appointment = first.json()["appointment"]
    print(f"✅ Reserved {appointment['id']} ({first.status_code}), replay returned {replay.status_code}")
    if replay.json()["appointment"]["id"] != appointment["id"]:
        print("❌ Replay returned a different appointment")
    return appointment["id"]


def cancel(appointment_id: str) -> bool:
    print("\n" + "=" * 60)
    print(f"Testing POST /api/v1/appointments/{appointment_id}/cancel")
    print("=" * 60)

    response = httpx.post(f"{BASE_URL}/api/v1/appointments/{appointment_id}/cancel", json={"actor": "business"})
    if response.status_code != 200:
        print(f"❌ HTTP Error: {response.status_code}")
        print(f"Response: {response.text}")
        return False
    print(f"✅ Status: {response.json()['status']}")
    return True


def main():
    print("\n🚀 Testing Booking API\n")

    try:
        httpx.get(f"{BASE_URL}/health", timeout=5.0)
        print("✅ Server is running\n")
    except httpx.HTTPError:
        print("❌ Server is not running!")
        print("   Please start it with: uvicorn booking_engine.main:app --reload --port 8001")
        sys.exit(1)

    day = next_weekday(date.today())
    start = check_availability(day) or datetime.combine(day, time(9, 0)).isoformat()
    appointment_id = reserve(start)
    if appointment_id:
        cancel(appointment_id)

    print("\n" + "=" * 60)
    print("✅ Smoke run complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
