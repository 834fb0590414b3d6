"""Pydantic models for staff members and their bookings."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import AwareDatetime, BaseModel, Field


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def blocks_time(self) -> bool:
        """Cancelled bookings never occupy the staff member's time."""
        return self is not BookingStatus.CANCELLED


class Staff(BaseModel):
    """A staff member who can be booked.

    ``google_calendar_email`` is the identity used to query the external
    calendar; when it is empty no external check is made.
    """

    id: int
    name: str = ""
    google_calendar_email: Optional[str] = None
    active: bool = True


class Booking(BaseModel):
    """An appointment stored in the local booking store."""

    id: int
    staff_id: int
    start: AwareDatetime
    duration_minutes: int = Field(default=60, gt=0)
    status: BookingStatus = BookingStatus.PENDING
    google_event_id: Optional[str] = None

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap of ``[self.start, self.end)`` with ``[start, end)``."""
        return self.start < end and start < self.end
