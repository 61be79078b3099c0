import math
from datetime import datetime, timedelta


class TimeGuard:
    """Elapsed/remaining time for one session; expiry is checked on demand."""

    def __init__(self, start_time: datetime, duration_seconds: int):
        self.start_time = start_time
        self.duration_seconds = int(duration_seconds)

    @property
    def deadline(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration_seconds)

    def elapsed(self, now: datetime) -> int:
        return max(0, math.floor((now - self.start_time).total_seconds()))

    def remaining(self, now: datetime) -> int:
        left = self.duration_seconds - (now - self.start_time).total_seconds()
        return max(0, math.floor(left))

    def is_expired(self, now: datetime) -> bool:
        return self.remaining(now) <= 0
