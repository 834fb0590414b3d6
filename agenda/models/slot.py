"""Slot produced by the availability resolver, and its HTTP representation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel


@dataclass(frozen=True)
class Slot:
    """A candidate time window within business hours."""

    start: datetime
    end: datetime
    available: bool


class SlotResponse(BaseModel):
    """JSON shape returned by ``GET /api/availability``."""

    start: datetime
    end: datetime
    available: bool

    @classmethod
    def from_slot(cls, slot: Slot) -> "SlotResponse":
        return cls(start=slot.start, end=slot.end, available=slot.available)
