"""Data models for the availability layer."""

from .booking import Booking, BookingStatus, Staff
from .slot import Slot, SlotResponse

__all__ = ["Booking", "BookingStatus", "Slot", "SlotResponse", "Staff"]
