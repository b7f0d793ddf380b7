import logging

from fastapi import FastAPI

from booking_engine.api.v1.appointments import router as appointments_router
from booking_engine.core.config import settings


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("appointment_id", "resource_id", "status", "event", "attempt", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Appointment Booking Engine", version="1.0.0")

app.include_router(appointments_router, prefix="/api/v1", tags=["appointments"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
