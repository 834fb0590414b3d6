"""Abstract base class for local booking stores.

The store is the authoritative record of a staff member's appointments.
The availability resolver only reads from it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from agenda.models.booking import Booking, Staff


class BookingStore(ABC):
    """Read interface over staff members and their bookings."""

    @abstractmethod
    async def get_staff(self, staff_id: int) -> Optional[Staff]:
        """Return the staff member, or None if it does not exist."""

    @abstractmethod
    async def find_conflicts(
        self,
        staff_id: int,
        start: datetime,
        end: datetime,
    ) -> list[Booking]:
        """Return bookings that block ``[start, end)`` for a staff member.

        Args:
            staff_id: Staff member whose bookings are searched.
            start: Beginning of the interval (inclusive).
            end: End of the interval (exclusive).

        Returns:
            Non-cancelled bookings whose own ``[start, start + duration)``
            interval overlaps the requested one.
        """
