"""External calendar abstractions and implementations."""

from .base import CalendarEvent, CalendarProvider

__all__ = ["CalendarEvent", "CalendarProvider"]
