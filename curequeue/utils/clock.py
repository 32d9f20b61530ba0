from datetime import datetime, timezone
from typing import NamedTuple

import pytz

from curequeue.config import get_settings


class LocalNow(NamedTuple):
    """Civil "now" in the clinic timezone."""
    date: str  # YYYY-MM-DD
    time: str  # HH:MM


class ClinicClock:
    """Reads the wall clock and renders it in a fixed IANA zone.

    The server and client timezones never matter: the date a booking lands on
    and the time stamped on it are always the clinic's.
    """

    def __init__(self, tz_name: str) -> None:
        self.tz = pytz.timezone(tz_name)

    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)

    def now(self) -> LocalNow:
        local = self.utcnow().astimezone(self.tz)
        return LocalNow(date=local.strftime("%Y-%m-%d"), time=local.strftime("%H:%M"))

    def today(self) -> str:
        return self.now().date


class FixedClock(ClinicClock):
    """Clock pinned to a single UTC instant (tests, replays)."""

    def __init__(self, instant: datetime, tz_name: str) -> None:
        super().__init__(tz_name)
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        self.instant = instant

    def utcnow(self) -> datetime:
        return self.instant


_clock: ClinicClock | None = None


def get_clock() -> ClinicClock:
    """FastAPI dependency returning the process-wide clinic clock."""
    global _clock
    if _clock is None:
        _clock = ClinicClock(get_settings().CLINIC_TIMEZONE)
    return _clock


def parse_civil_date(value: str) -> str:
    """Validate a YYYY-MM-DD string and return it normalised; raises ValueError."""
    return datetime.strptime(value.strip(), "%Y-%m-%d").strftime("%Y-%m-%d")
