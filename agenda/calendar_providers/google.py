"""Google Calendar provider implementation.

Uses a Google Cloud service account to interact with the Calendar API v3.
Staff calendars must be shared with the service account for free/busy
queries to return data.  The service account JSON key path is read from the
``GOOGLE_SERVICE_ACCOUNT_JSON`` environment variable.
"""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timezone
from functools import partial
from typing import Any

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build

from .base import CalendarEvent, CalendarProvider

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3."""

    def __init__(self, service_account_path: str | None = None) -> None:
        sa_path = service_account_path or os.environ.get(
            "GOOGLE_SERVICE_ACCOUNT_JSON", ""
        )
        if not sa_path:
            raise ValueError(
                "Google service account JSON path must be provided via "
                "constructor argument or GOOGLE_SERVICE_ACCOUNT_JSON env var."
            )
        self._credentials = Credentials.from_service_account_file(
            sa_path, scopes=SCOPES
        )
        self._service = build(
            "calendar", "v3", credentials=self._credentials, cache_discovery=False
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a synchronous Google API call in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, partial(func, *args, **kwargs)
        )

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    @staticmethod
    def _parse_rfc3339(value: str) -> datetime:
        # Google returns "Z" suffixes, which fromisoformat rejects before 3.11.
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def has_conflict(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
    ) -> bool:
        """Query the freebusy API for busy intervals overlapping ``[start, end)``.

        Errors reported per calendar (e.g. ``notFound`` when the calendar is
        not shared with the service account) are raised as ``RuntimeError``.
        """
        body = {
            "timeMin": self._to_rfc3339(start),
            "timeMax": self._to_rfc3339(end),
            "items": [{"id": calendar_id}],
        }

        response = await self._run_in_executor(
            self._service.freebusy().query(body=body).execute
        )

        calendar = response.get("calendars", {}).get(calendar_id, {})
        errors = calendar.get("errors")
        if errors:
            reasons = ", ".join(e.get("reason", "unknown") for e in errors)
            raise RuntimeError(
                f"Free/busy lookup failed for {calendar_id}: {reasons}"
            )

        start_tz = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
        end_tz = end if end.tzinfo else end.replace(tzinfo=timezone.utc)

        for interval in calendar.get("busy", []):
            b_start = self._parse_rfc3339(interval["start"])
            b_end = self._parse_rfc3339(interval["end"])
            if b_start < end_tz and start_tz < b_end:
                return True
        return False

    async def create_event(
        self, calendar_id: str, event: CalendarEvent
    ) -> dict:
        """Insert an event into the Google Calendar.

        Sends email invitations to any attendees listed on the event.
        """
        body: dict[str, Any] = {
            "summary": event.summary,
            "start": {
                "dateTime": self._to_rfc3339(event.start),
                "timeZone": event.timezone,
            },
            "end": {
                "dateTime": self._to_rfc3339(event.end),
                "timeZone": event.timezone,
            },
            "colorId": event.color_id,
            "transparency": "opaque" if event.blocks_time else "transparent",
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": method, "minutes": minutes}
                    for method, minutes in event.reminders
                ],
            },
        }
        if event.description:
            body["description"] = event.description
        if event.location:
            body["location"] = event.location

        attendees = list(dict.fromkeys(a for a in event.attendees if a))
        if attendees:
            body["attendees"] = [
                {"email": addr, "responseStatus": "needsAction"}
                for addr in attendees
            ]

        result = await self._run_in_executor(
            self._service.events()
            .insert(
                calendarId=calendar_id,
                body=body,
                sendUpdates="all",
            )
            .execute
        )

        logger.info("Created event %s on calendar %s", result["id"], calendar_id)

        return {
            "event_id": result["id"],
            "html_link": result.get("htmlLink", ""),
            "status": result.get("status", "confirmed"),
        }

    async def update_event(
        self,
        calendar_id: str,
        event_id: str,
        start: datetime,
        end: datetime,
    ) -> bool:
        """Move an event to a new time window."""
        body = {
            "start": {"dateTime": self._to_rfc3339(start)},
            "end": {"dateTime": self._to_rfc3339(end)},
        }
        try:
            await self._run_in_executor(
                self._service.events()
                .patch(calendarId=calendar_id, eventId=event_id, body=body)
                .execute
            )
            logger.info(
                "Updated event %s on calendar %s", event_id, calendar_id
            )
            return True
        except Exception:
            logger.exception(
                "Failed to update event %s on calendar %s",
                event_id,
                calendar_id,
            )
            return False

    async def cancel_event(
        self, calendar_id: str, event_id: str
    ) -> bool:
        """Delete an event from Google Calendar."""
        try:
            await self._run_in_executor(
                self._service.events()
                .delete(calendarId=calendar_id, eventId=event_id)
                .execute
            )
            logger.info(
                "Cancelled event %s on calendar %s", event_id, calendar_id
            )
            return True
        except Exception:
            logger.exception(
                "Failed to cancel event %s on calendar %s",
                event_id,
                calendar_id,
            )
            return False
