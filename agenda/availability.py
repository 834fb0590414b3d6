"""Availability resolution for a staff member's business day.

For a staff member, a date and a meeting duration, the resolver walks the
business-hours window in fixed strides and flags each candidate slot as
available or occupied.  A slot is occupied when a non-cancelled local
booking overlaps it, or, failing that, when the staff member's external
calendar reports a conflict.

External calendar failures fail open: a timeout or error from the provider
leaves the slot available, so calendar sync problems never block local
bookings.  Local store failures abort the whole call.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union
from zoneinfo import ZoneInfo

from agenda.calendar_providers.base import CalendarProvider
from agenda.config import Settings
from agenda.errors import InvalidArgumentError, LocalStoreError, NotFoundError
from agenda.models.slot import Slot
from agenda.stores.base import BookingStore

log = logging.getLogger("agenda.availability")

DEFAULT_TIMEZONE = "America/Sao_Paulo"


class AvailabilityResolver:
    """Computes free/busy slots from the local store and an external calendar.

    The resolver holds no mutable state; concurrent ``resolve`` calls are
    independent of each other.
    """

    def __init__(
        self,
        store: BookingStore,
        calendar: Optional[CalendarProvider] = None,
        *,
        tz: Union[str, tzinfo] = DEFAULT_TIMEZONE,
        day_start: time = time(8, 0),
        day_end: time = time(17, 0),
        stride_minutes: int = 30,
        external_timeout: float = 5.0,
        max_concurrent_checks: int = 8,
    ) -> None:
        if day_end <= day_start:
            raise ValueError("day_end must be later than day_start")
        if stride_minutes <= 0:
            raise ValueError("stride_minutes must be positive")
        if max_concurrent_checks <= 0:
            raise ValueError("max_concurrent_checks must be positive")

        self._store = store
        self._calendar = calendar
        self._tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._day_start = day_start
        self._day_end = day_end
        self._stride = timedelta(minutes=stride_minutes)
        self._external_timeout = external_timeout
        self._max_concurrent_checks = max_concurrent_checks

    @classmethod
    def from_settings(
        cls,
        store: BookingStore,
        calendar: Optional[CalendarProvider],
        settings: Settings,
    ) -> "AvailabilityResolver":
        return cls(
            store,
            calendar,
            tz=settings.business_timezone,
            day_start=settings.business_day_start,
            day_end=settings.business_day_end,
            stride_minutes=settings.slot_stride_minutes,
            external_timeout=settings.external_check_timeout,
            max_concurrent_checks=settings.max_concurrent_checks,
        )

    # ------------------------------------------------------------------
    # Slot geometry
    # ------------------------------------------------------------------

    def business_window(self, day: date) -> tuple[datetime, datetime]:
        """Return the business-hours bounds for ``day`` as UTC instants."""
        start = datetime.combine(day, self._day_start, tzinfo=self._tz)
        end = datetime.combine(day, self._day_end, tzinfo=self._tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def candidate_windows(
        self, day: date, duration_minutes: int
    ) -> list[tuple[datetime, datetime]]:
        """Candidate ``(start, end)`` pairs; slots that would overrun the day are dropped."""
        window_start, window_end = self.business_window(day)
        duration = timedelta(minutes=duration_minutes)

        windows: list[tuple[datetime, datetime]] = []
        cursor = window_start
        while cursor + duration <= window_end:
            windows.append((cursor, cursor + duration))
            cursor += self._stride
        return windows

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(
        self,
        staff_id: int,
        day: date,
        duration_minutes: int = 60,
        calendar_id: Optional[str] = None,
    ) -> list[Slot]:
        """Resolve availability for one staff member on one business day.

        Args:
            staff_id: Staff member to check.
            day: Calendar date, interpreted in the business timezone.
            duration_minutes: Length of each slot.
            calendar_id: External calendar identity. Defaults to the staff
                member's Google Calendar email; no external check is made
                when neither is set.

        Returns:
            Slots ordered by start, expressed in the business timezone.

        Raises:
            InvalidArgumentError: ``duration_minutes`` is not a positive
                integer or ``day`` is not a date.
            NotFoundError: the staff member does not exist.
            LocalStoreError: the booking store failed.
        """
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
            raise InvalidArgumentError(
                f"duration_minutes must be an integer, got {duration_minutes!r}"
            )
        if duration_minutes <= 0:
            raise InvalidArgumentError(
                f"duration_minutes must be positive, got {duration_minutes}"
            )
        if isinstance(day, datetime) or not isinstance(day, date):
            raise InvalidArgumentError(f"day must be a calendar date, got {day!r}")

        try:
            staff = await self._store.get_staff(staff_id)
        except Exception as exc:
            log.exception("Booking store failed looking up staff %s", staff_id)
            raise LocalStoreError(f"Could not look up staff {staff_id}") from exc

        if staff is None:
            log.warning("Staff %s not found", staff_id)
            raise NotFoundError(f"Staff {staff_id} not found")

        if calendar_id is None:
            calendar_id = staff.google_calendar_email or None

        windows = self.candidate_windows(day, duration_minutes)
        log.info(
            "Resolving availability: staff=%s date=%s duration=%dmin candidates=%d external=%s",
            staff_id,
            day.isoformat(),
            duration_minutes,
            len(windows),
            bool(calendar_id and self._calendar),
        )

        semaphore = asyncio.Semaphore(self._max_concurrent_checks)
        tasks = [
            asyncio.ensure_future(
                self._check_slot(staff_id, calendar_id, start, end, semaphore)
            )
            for start, end in windows
        ]

        try:
            slots = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        log.info(
            "Resolved %d slots for staff %s on %s (%d free)",
            len(slots),
            staff_id,
            day.isoformat(),
            sum(1 for s in slots if s.available),
        )
        return list(slots)

    # ------------------------------------------------------------------
    # Per-slot checks
    # ------------------------------------------------------------------

    async def _check_slot(
        self,
        staff_id: int,
        calendar_id: Optional[str],
        start: datetime,
        end: datetime,
        semaphore: asyncio.Semaphore,
    ) -> Slot:
        async with semaphore:
            busy = await self._has_local_conflict(staff_id, start, end)
            if busy:
                log.debug("%s - occupied (local booking)", start.isoformat())
            elif calendar_id and self._calendar is not None:
                busy = await self._has_external_conflict(calendar_id, start, end)
                if busy:
                    log.debug("%s - occupied (external calendar)", start.isoformat())

        return Slot(
            start=start.astimezone(self._tz),
            end=end.astimezone(self._tz),
            available=not busy,
        )

    async def _has_local_conflict(
        self, staff_id: int, start: datetime, end: datetime
    ) -> bool:
        try:
            conflicts = await self._store.find_conflicts(staff_id, start, end)
        except Exception as exc:
            log.exception(
                "Booking store failed for staff %s at %s", staff_id, start.isoformat()
            )
            raise LocalStoreError(
                f"Could not read bookings for staff {staff_id}"
            ) from exc
        return bool(conflicts)

    async def _has_external_conflict(
        self, calendar_id: str, start: datetime, end: datetime
    ) -> bool:
        try:
            busy = await asyncio.wait_for(
                self._calendar.has_conflict(calendar_id, start, end),
                timeout=self._external_timeout,
            )
            return bool(busy)
        except asyncio.TimeoutError:
            log.warning(
                "External calendar check timed out for %s at %s; treating as available",
                calendar_id,
                start.isoformat(),
            )
        except Exception as exc:
            log.warning(
                "External calendar check failed for %s at %s; treating as available: %s",
                calendar_id,
                start.isoformat(),
                exc,
            )
        return False
