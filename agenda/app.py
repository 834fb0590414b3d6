"""FastAPI application — HTTP endpoints for staff availability.

Endpoints:

  GET  /api/availability   Free/busy slots for one staff member on one day
  GET  /health             Health check

Query parameters for /api/availability:

  staff_id   Staff member identifier (required)
  date       Business date, YYYY-MM-DD (required)
  duration   Meeting length in minutes (default from settings, 60)

The staff member's Google Calendar email is consulted when a calendar
provider is configured.  Calendar errors never fail the request.
"""

from __future__ import annotations

# Load .env into os.environ before settings are read.
from dotenv import load_dotenv
load_dotenv()

import logging
import time
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from agenda.availability import AvailabilityResolver
from agenda.calendar_providers.base import CalendarProvider
from agenda.config import Settings, settings as default_settings
from agenda.errors import InvalidArgumentError, LocalStoreError, NotFoundError
from agenda.models.slot import SlotResponse
from agenda.stores.base import BookingStore
from agenda.stores.sql import SqlBookingStore

log = logging.getLogger("agenda.app")

_START_TIME = time.time()


def _create_calendar_provider(settings: Settings) -> Optional[CalendarProvider]:
    """Build the Google provider when a service account is configured."""
    if not settings.google_service_account_json:
        return None
    try:
        from agenda.calendar_providers.google import GoogleCalendarProvider

        return GoogleCalendarProvider(
            service_account_path=settings.google_service_account_json,
        )
    except Exception as e:
        log.warning("Google Calendar not configured: %s", e)
        return None


def get_resolver(request: Request) -> AvailabilityResolver:
    return request.app.state.resolver


def create_app(
    store: Optional[BookingStore] = None,
    calendar: Optional[CalendarProvider] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit ``store`` the SQL store at ``settings.database_url``
    is used; without an explicit ``calendar`` the Google provider is built
    from settings when possible.
    """
    settings = settings or default_settings

    # Raises on invalid configuration before anything is built from it.
    for warning in settings.validate_startup():
        log.warning(warning)

    if store is None:
        store = SqlBookingStore(settings.database_url)
    if calendar is None:
        calendar = _create_calendar_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(store, SqlBookingStore):
            store.create_all()
        yield
        if isinstance(store, SqlBookingStore):
            store.dispose()

    app = FastAPI(
        title="Agenda Availability",
        description="Staff availability across local bookings and Google Calendar",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.resolver = AvailabilityResolver.from_settings(store, calendar, settings)

    # ── Error mapping ──────────────────────────────────────────

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=404)

    @app.exception_handler(InvalidArgumentError)
    async def invalid_argument(request: Request, exc: InvalidArgumentError) -> JSONResponse:
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.exception_handler(RequestValidationError)
    async def malformed_query(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse({"detail": jsonable_encoder(exc.errors())}, status_code=400)

    @app.exception_handler(LocalStoreError)
    async def store_unavailable(request: Request, exc: LocalStoreError) -> JSONResponse:
        return JSONResponse(
            {"detail": "Booking store unavailable, try again later."},
            status_code=503,
        )

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health check — confirms the event loop is responsive."""
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Availability ───────────────────────────────────────────

    @app.get("/api/availability", response_model=list[SlotResponse])
    async def availability(
        staff_id: int = Query(...),
        day: date = Query(..., alias="date"),
        duration: int = Query(default=settings.default_duration_minutes),
        resolver: AvailabilityResolver = Depends(get_resolver),
    ) -> list[SlotResponse]:
        """Return every slot of the business day, flagged available or occupied."""
        slots = await resolver.resolve(staff_id, day, duration_minutes=duration)
        return [SlotResponse.from_slot(slot) for slot in slots]

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "agenda.app:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
    )
