"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from typing import Optional

import pytz


@dataclass(frozen=True)
class SchedulingSettings:
    """Settings for the conflict engine and its collaborators."""
    timezone: str = "America/New_York"
    source_timeout_seconds: float = 10.0
    slot_search_days: int = 7
    slot_day_start_hour: int = 9
    slot_day_end_hour: int = 17
    slot_max_suggestions: int = 5
    app_url: str = "http://localhost:8000"
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_refresh_token: Optional[str] = None
    google_calendar_base_url: str = "https://www.googleapis.com/calendar/v3"
    google_token_url: str = "https://oauth2.googleapis.com/token"
    google_calendar_timeout_seconds: float = 30.0

    @classmethod
    def from_env(cls) -> "SchedulingSettings":
        """
        Build settings from environment variables.

        Call ``load_dotenv()`` first if values should come from a .env file.
        """
        return cls(
            timezone=os.getenv("SCHEDULING_TIMEZONE", "America/New_York"),
            source_timeout_seconds=float(os.getenv("CONFLICT_SOURCE_TIMEOUT_SECONDS", "10")),
            slot_search_days=int(os.getenv("SLOT_SEARCH_DAYS", "7")),
            slot_day_start_hour=int(os.getenv("SLOT_DAY_START_HOUR", "9")),
            slot_day_end_hour=int(os.getenv("SLOT_DAY_END_HOUR", "17")),
            slot_max_suggestions=int(os.getenv("SLOT_MAX_SUGGESTIONS", "5")),
            app_url=os.getenv("APP_URL", "http://localhost:8000"),
            google_client_id=os.getenv("GOOGLE_CLIENT_ID") or None,
            google_client_secret=os.getenv("GOOGLE_CLIENT_SECRET") or None,
            google_refresh_token=os.getenv("GOOGLE_REFRESH_TOKEN") or None,
            google_calendar_base_url=os.getenv(
                "GOOGLE_CALENDAR_BASE_URL",
                "https://www.googleapis.com/calendar/v3"
            ),
            google_token_url=os.getenv("GOOGLE_TOKEN_URL", "https://oauth2.googleapis.com/token"),
            google_calendar_timeout_seconds=float(os.getenv("GOOGLE_CALENDAR_TIMEOUT_SECONDS", "30")),
        )

    @property
    def tz(self):
        return pytz.timezone(self.timezone)

    @property
    def calendar_configured(self) -> bool:
        return bool(self.google_refresh_token and self.google_client_id)
