from datetime import datetime, timedelta
from typing import Protocol

from smartbills.utils.timezone import to_utc_aware, utc_now


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    def now(self) -> datetime:
        return utc_now()


class FixedClock:
    """Clock that only moves when told to. Used to simulate due notifications."""

    def __init__(self, current: datetime):
        self.current = to_utc_aware(current)

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = to_utc_aware(current)

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta
