from datetime import date, datetime
from typing import Callable

import pytz

from app.domain.exceptions import SameDayCutoffError

DEFAULT_CUTOFF_HOUR = 9


class SameDayCutoffGuard:
    """
    Rejects delivery requests for today once the bakery's local cutoff hour has passed.

    "Today" and "current hour" are both read from a single localized timestamp,
    so they can never disagree about which day it is.
    """

    def __init__(
        self,
        timezone_name: str,
        cutoff_hour: int = DEFAULT_CUTOFF_HOUR,
        clock: Callable[[], datetime] | None = None,
    ):
        if not 0 <= cutoff_hour <= 24:
            raise ValueError(f"cutoff_hour must be between 0 and 24, got {cutoff_hour}")
        self.timezone = pytz.timezone(timezone_name)
        self.cutoff_hour = cutoff_hour
        self._clock = clock

    def local_now(self) -> datetime:
        if self._clock is None:
            return datetime.now(self.timezone)
        now = self._clock()
        if now.tzinfo is None:
            now = pytz.utc.localize(now)
        return now.astimezone(self.timezone)

    def check(self, delivery_date: date) -> None:
        """Only a request for today can be refused; any other date passes at any hour."""
        now = self.local_now()
        if delivery_date == now.date() and now.hour >= self.cutoff_hour:
            raise SameDayCutoffError(
                f"same-day request at {now:%H:%M} {self.timezone.zone}, cutoff {self.cutoff_hour}:00"
            )
