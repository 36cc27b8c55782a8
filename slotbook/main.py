import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from slotbook.api.v1.availability import router as availability_router
from slotbook.api.v1.bookings import router as bookings_router
from slotbook.application.exceptions import StoreRequestRejected
from slotbook.core.config import settings


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("provider_id", "appointment_id", "exception_id", "date", "time", "status", "reason"):
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

logger = logging.getLogger(__name__)

app = FastAPI(title="Slotbook Scheduling", version="1.0.0")


@app.exception_handler(StoreRequestRejected)
async def store_rejected_handler(request: Request, exc: StoreRequestRejected):
    """The backing store refused the request, usually a schema mismatch."""
    logger.error("Store rejected request: %s", exc, extra={"reason": exc.code})
    return JSONResponse(status_code=502, content={"detail": str(exc), "code": exc.code})


app.include_router(availability_router, prefix="/api/v1", tags=["availability"])
app.include_router(bookings_router, prefix="/api/v1", tags=["bookings"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
