"""Abstract base class for external calendar providers.

Defines the interface for checking a staff member's external calendar and
mirroring appointments onto it.  Any calendar backend (Google, Outlook, etc.)
implements this ABC.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class CalendarEvent:
    """Represents an appointment to be mirrored on an external calendar."""

    summary: str
    start: datetime
    end: datetime
    description: str = ""
    attendees: list[str] = field(default_factory=list)  # email addresses
    location: str = ""
    color_id: str = "6"
    blocks_time: bool = True
    timezone: str = "America/Sao_Paulo"
    # (method, minutes before start)
    reminders: list[tuple[str, int]] = field(
        default_factory=lambda: [("email", 24 * 60), ("popup", 30)]
    )


class CalendarProvider(ABC):
    """Abstract calendar backend.

    Subclasses must implement conflict checking, event creation, event
    update and event cancellation.
    """

    @abstractmethod
    async def has_conflict(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> bool:
        """Return True if the calendar is busy anywhere in ``[start, end)``.

        Args:
            calendar_id: The calendar to query (usually an email address).
            start: Beginning of the interval.
            end: End of the interval (exclusive).

        Raises:
            Any provider error. Callers decide how to treat failures.
        """

    @abstractmethod
    async def create_event(
        self, calendar_id: str, event: CalendarEvent
    ) -> dict:
        """Create a calendar event.

        Returns:
            Dict containing at least ``"event_id"`` and ``"html_link"``.
        """

    @abstractmethod
    async def update_event(
        self,
        calendar_id: str,
        event_id: str,
        start: datetime,
        end: datetime,
    ) -> bool:
        """Move an existing event. Returns True on success."""

    @abstractmethod
    async def cancel_event(
        self, calendar_id: str, event_id: str
    ) -> bool:
        """Cancel / delete a calendar event. Returns True on success."""
