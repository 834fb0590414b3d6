"""SQLAlchemy-backed booking store.

Reads the ``staff`` and ``bookings`` tables owned by the scheduling
application.  Instants are stored as naive UTC and handed back tz-aware.
The engine is synchronous, so every query runs in the default thread pool.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    select,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from agenda.models.booking import Booking, BookingStatus, Staff

from .base import BookingStore

logger = logging.getLogger(__name__)

Base = declarative_base()


class StaffRow(Base):
    __tablename__ = "staff"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False, default="")
    google_calendar_email = Column(String(200), nullable=True)
    active = Column(Boolean, nullable=False, default=True)


class BookingRow(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True)
    staff_id = Column(Integer, ForeignKey("staff.id"), nullable=False, index=True)
    start_at = Column(DateTime, nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    google_event_id = Column(String(500), nullable=True)


def _to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _from_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _staff_from_row(row: StaffRow) -> Staff:
    return Staff(
        id=row.id,
        name=row.name,
        google_calendar_email=row.google_calendar_email,
        active=row.active,
    )


def _booking_from_row(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        staff_id=row.staff_id,
        start=_from_utc_naive(row.start_at),
        duration_minutes=row.duration_minutes,
        status=BookingStatus(row.status),
        google_event_id=row.google_event_id,
    )


class SqlBookingStore(BookingStore):
    """BookingStore over any SQLAlchemy-supported database."""

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        if database_url.startswith("sqlite"):
            # Queries run on executor threads.
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        self._engine = create_engine(database_url, pool_pre_ping=True, **engine_kwargs)
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, bind=self._engine
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a blocking database call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    def _get_staff_sync(self, staff_id: int) -> Optional[Staff]:
        with self._session_factory() as session:
            row = session.get(StaffRow, staff_id)
            return _staff_from_row(row) if row is not None else None

    def _find_conflicts_sync(
        self, staff_id: int, start: datetime, end: datetime
    ) -> list[Booking]:
        # Durations live per row, so only the start bound is pushed into SQL;
        # the end of each booking is checked on the model.
        query = (
            select(BookingRow)
            .where(BookingRow.staff_id == staff_id)
            .where(BookingRow.status != BookingStatus.CANCELLED.value)
            .where(BookingRow.start_at < _to_utc_naive(end))
            .order_by(BookingRow.start_at)
        )
        with self._session_factory() as session:
            bookings = [_booking_from_row(row) for row in session.scalars(query)]
        return [b for b in bookings if b.overlaps(start, end)]

    # ------------------------------------------------------------------
    # Schema and seeding
    # ------------------------------------------------------------------

    def create_all(self) -> None:
        Base.metadata.create_all(self._engine)
        logger.info("Booking store schema ready on %s", self._engine.url)

    def add_staff(self, staff: Staff) -> Staff:
        with self._session_factory() as session:
            session.add(
                StaffRow(
                    id=staff.id,
                    name=staff.name,
                    google_calendar_email=staff.google_calendar_email,
                    active=staff.active,
                )
            )
            session.commit()
        return staff

    def add_booking(self, booking: Booking) -> Booking:
        with self._session_factory() as session:
            session.add(
                BookingRow(
                    id=booking.id,
                    staff_id=booking.staff_id,
                    start_at=_to_utc_naive(booking.start),
                    duration_minutes=booking.duration_minutes,
                    status=booking.status.value,
                    google_event_id=booking.google_event_id,
                )
            )
            session.commit()
        return booking

    def dispose(self) -> None:
        self._engine.dispose()

    # ------------------------------------------------------------------
    # BookingStore interface
    # ------------------------------------------------------------------

    async def get_staff(self, staff_id: int) -> Optional[Staff]:
        return await self._run_in_executor(self._get_staff_sync, staff_id)

    async def find_conflicts(
        self, staff_id: int, start: datetime, end: datetime
    ) -> list[Booking]:
        return await self._run_in_executor(
            self._find_conflicts_sync, staff_id, start, end
        )
