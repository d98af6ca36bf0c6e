"""Global Settings - Loads configuration from environment variables.

Centralizes all configuration so the token manager and report code
don't read env vars directly.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from auth.errors import ConfigurationError
from auth.models import (
    CALENDAR_READONLY_SCOPE,
    GOOGLE_AUTH_ENDPOINT,
    GOOGLE_TOKEN_ENDPOINT,
    OOB_REDIRECT_URI,
    TokenManagerConfig,
)

load_dotenv()

WEEKDAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass
class Settings:
    """Application-wide settings loaded from environment variables."""

    # OAuth
    google_credentials_path: str = "credentials.json"
    google_token_path: str = ".temp/token.json"
    auth_endpoint: str = GOOGLE_AUTH_ENDPOINT
    token_endpoint: str = GOOGLE_TOKEN_ENDPOINT
    redirect_uri: str = OOB_REDIRECT_URI
    token_expiry_leeway: int = 0
    http_timeout: int = 30

    # Report
    calendar_id: str = "primary"
    report_start: str = ""
    report_end: str = ""
    weekdays: list[int] = field(default_factory=lambda: [0, 1, 2, 3, 4])
    start_time: time = time(0, 0)
    end_time: time = time(23, 59)
    user_timezone: str = "UTC"

    def token_manager_config(self) -> TokenManagerConfig:
        """Project the OAuth fields into the TokenManager's config."""
        return TokenManagerConfig(
            identity_path=self.google_credentials_path,
            cache_path=self.google_token_path,
            token_endpoint=self.token_endpoint,
            auth_endpoint=self.auth_endpoint,
            redirect_uri=self.redirect_uri,
            scope=CALENDAR_READONLY_SCOPE,
            expiry_leeway=self.token_expiry_leeway,
            timeout=self.http_timeout,
        )

    def describe(self) -> str:
        """One block of text summarizing the report configuration."""
        days = ",".join(WEEKDAY_NAMES[d] for d in self.weekdays)
        return (
            f"Calendar: {self.calendar_id}\n"
            f"Range:    {self.report_start} -> {self.report_end}\n"
            f"Days:     {days}\n"
            f"Window:   {self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')}"
        )


def load_settings() -> Settings:
    """Load settings from environment variables with sensible defaults.

    Environment variables:
        GOOGLE_CALENDAR_CREDENTIALS_PATH: Path to Google OAuth credentials.json
        GOOGLE_CALENDAR_TOKEN_PATH: Path to the cached OAuth token
        GOOGLE_AUTH_ENDPOINT, GOOGLE_TOKEN_ENDPOINT: Provider endpoints
        GOOGLE_REDIRECT_URI: Redirect URI (default: out-of-band)
        TOKEN_EXPIRY_LEEWAY: Seconds to treat tokens as expired early
        HTTP_TIMEOUT: Token endpoint timeout in seconds
        CALENDAR_ID: Calendar to report on (default: "primary")
        REPORT_START, REPORT_END: RFC 3339 instants or YYYY-MM-DD dates
            (default: current Monday-Sunday week)
        REPORT_WEEKDAYS: Comma-separated weekdays, Monday=0 (default: "0,1,2,3,4")
        REPORT_START_TIME, REPORT_END_TIME: HH:MM window for event start times
        USER_TIMEZONE: IANA timezone string for date-only range bounds

    Returns:
        A populated Settings instance.

    Raises:
        ConfigurationError: If a value cannot be parsed.
    """
    user_timezone = os.getenv("USER_TIMEZONE", "UTC")
    tz = _load_timezone(user_timezone)

    default_start, default_end = calculate_week_range(datetime.now(tz))

    return Settings(
        google_credentials_path=os.getenv("GOOGLE_CALENDAR_CREDENTIALS_PATH", "credentials.json"),
        google_token_path=os.getenv("GOOGLE_CALENDAR_TOKEN_PATH", ".temp/token.json"),
        auth_endpoint=os.getenv("GOOGLE_AUTH_ENDPOINT", GOOGLE_AUTH_ENDPOINT),
        token_endpoint=os.getenv("GOOGLE_TOKEN_ENDPOINT", GOOGLE_TOKEN_ENDPOINT),
        redirect_uri=os.getenv("GOOGLE_REDIRECT_URI", OOB_REDIRECT_URI),
        token_expiry_leeway=_parse_int("TOKEN_EXPIRY_LEEWAY", "0"),
        http_timeout=_parse_int("HTTP_TIMEOUT", "30"),
        calendar_id=os.getenv("CALENDAR_ID", "primary"),
        report_start=os.getenv("REPORT_START", default_start),
        report_end=os.getenv("REPORT_END", default_end),
        weekdays=parse_weekdays(os.getenv("REPORT_WEEKDAYS", "0,1,2,3,4")),
        start_time=parse_clock(os.getenv("REPORT_START_TIME", "00:00")),
        end_time=parse_clock(os.getenv("REPORT_END_TIME", "23:59")),
        user_timezone=user_timezone,
    )


def calculate_week_range(today: datetime) -> tuple[str, str]:
    """Return the Monday-Sunday range containing ``today`` as YYYY-MM-DD strings."""
    # Monday is weekday 0
    monday = today - timedelta(days=today.weekday())
    sunday = monday + timedelta(days=6)
    return monday.strftime("%Y-%m-%d"), sunday.strftime("%Y-%m-%d")


def parse_weekdays(value: str) -> list[int]:
    """Parse "0,2,4" into a sorted list of weekday numbers (Monday=0)."""
    days = set()
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            day = int(item)
        except ValueError as e:
            raise ConfigurationError(f"Invalid weekday {item!r} in REPORT_WEEKDAYS") from e
        if not 0 <= day <= 6:
            raise ConfigurationError(f"Weekday {day} out of range 0-6 in REPORT_WEEKDAYS")
        days.add(day)
    if not days:
        raise ConfigurationError("REPORT_WEEKDAYS selects no days")
    return sorted(days)


def parse_clock(value: str) -> time:
    """Parse an HH:MM string."""
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError as e:
        raise ConfigurationError(f"Invalid time {value!r}, expected HH:MM") from e


def _parse_int(name: str, default: str) -> int:
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _load_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown timezone {name!r} in USER_TIMEZONE") from e
