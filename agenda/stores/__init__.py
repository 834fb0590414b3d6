"""Local booking store abstractions and implementations."""

from .base import BookingStore
from .memory import InMemoryBookingStore

__all__ = ["BookingStore", "InMemoryBookingStore"]
