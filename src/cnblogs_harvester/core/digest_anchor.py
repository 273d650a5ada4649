"""Daily anchor after which the digest becomes due."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta


def parse_anchor_time(value: str) -> time:
    """Parse ``HH:MM`` into a time of day."""
    return datetime.strptime(value.strip(), "%H:%M").time()


@dataclass(frozen=True)
class DigestAnchor:
    """Next moment a digest may be sent, in local time."""

    due_at: datetime

    @classmethod
    def for_day(cls, day: date, at: time) -> "DigestAnchor":
        return cls(datetime.combine(day, at))

    @property
    def day(self) -> date:
        """Day whose archive the digest covers."""
        return self.due_at.date()

    def is_due(self, now: datetime, grace: timedelta = timedelta(0)) -> bool:
        return now >= self.due_at + grace

    def next(self) -> "DigestAnchor":
        """Same time of day on the following day."""
        return DigestAnchor.for_day(self.day + timedelta(days=1), self.due_at.time())
