"""Dict-backed booking store for tests and local development."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from agenda.models.booking import Booking, Staff

from .base import BookingStore


class InMemoryBookingStore(BookingStore):
    def __init__(self) -> None:
        self._staff: dict[int, Staff] = {}
        self._bookings: list[Booking] = []

    def add_staff(self, staff: Staff) -> Staff:
        self._staff[staff.id] = staff
        return staff

    def add_booking(self, booking: Booking) -> Booking:
        self._bookings.append(booking)
        return booking

    async def get_staff(self, staff_id: int) -> Optional[Staff]:
        return self._staff.get(staff_id)

    async def find_conflicts(
        self, staff_id: int, start: datetime, end: datetime
    ) -> list[Booking]:
        return [
            b
            for b in self._bookings
            if b.staff_id == staff_id
            and b.status.blocks_time
            and b.overlaps(start, end)
        ]
