"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from datetime import time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings

log = logging.getLogger("agenda.config")


class Settings(BaseSettings):
    # Business hours (pinned timezone, never the host's local time)
    business_timezone: str = "America/Sao_Paulo"
    business_day_start: time = time(8, 0)
    business_day_end: time = time(17, 0)
    slot_stride_minutes: int = 30
    default_duration_minutes: int = 60

    # External calendar checks
    external_check_timeout: float = 5.0
    max_concurrent_checks: int = 8

    # Google Calendar
    google_service_account_json: str = ""

    # Local booking store
    database_url: str = "sqlite:///./agenda.db"

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.business_timezone)

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        try:
            ZoneInfo(self.business_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(
                f"BUSINESS_TIMEZONE {self.business_timezone!r} is not a known "
                "IANA timezone."
            )

        if self.business_day_end <= self.business_day_start:
            raise ValueError(
                "BUSINESS_DAY_END must be later than BUSINESS_DAY_START."
            )

        if self.slot_stride_minutes <= 0:
            raise ValueError("SLOT_STRIDE_MINUTES must be a positive integer.")

        if self.default_duration_minutes <= 0:
            raise ValueError("DEFAULT_DURATION_MINUTES must be a positive integer.")

        if self.max_concurrent_checks <= 0:
            raise ValueError("MAX_CONCURRENT_CHECKS must be a positive integer.")

        if self.external_check_timeout <= 0:
            warnings.append(
                "EXTERNAL_CHECK_TIMEOUT is not positive; every external "
                "calendar check will time out and slots will fail open."
            )

        if not self.google_service_account_json:
            warnings.append(
                "GOOGLE_SERVICE_ACCOUNT_JSON not set. Availability is computed "
                "from local bookings only."
            )

        return warnings


settings = Settings()
