"""Domain models for kids service sessions."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from uuid import UUID

from kids_checkin.domain.children import AgeGroup


@dataclass(frozen=True)
class ServiceSession:
    """A dated kids service that children can be checked in to."""

    id: UUID
    name: str
    service_date: date
    start_time: time
    end_time: time
    location: str
    max_capacity: int
    min_age: int
    max_age: int
    age_groups: frozenset[AgeGroup] = field(default_factory=frozenset)
    is_active: bool = True
    check_in_opens_minutes_before: int = 30
    check_in_closes_minutes_after: int = 15

    def starts_at(self, tz: tzinfo) -> datetime:
        """Return the session start as an aware datetime in ``tz``."""
        return datetime.combine(self.service_date, self.start_time, tzinfo=tz)

    def ends_at(self, tz: tzinfo) -> datetime:
        """Return the session end as an aware datetime in ``tz``."""
        return datetime.combine(self.service_date, self.end_time, tzinfo=tz)

    def check_in_opens_at(self, tz: tzinfo) -> datetime:
        return self.starts_at(tz) - timedelta(
            minutes=self.check_in_opens_minutes_before
        )

    def check_in_closes_at(self, tz: tzinfo) -> datetime:
        return self.starts_at(tz) + timedelta(
            minutes=self.check_in_closes_minutes_after
        )

    def attendance_window(self, tz: tzinfo) -> tuple[datetime, datetime]:
        """Return the span in which a check-in counts towards this session."""
        return self.check_in_opens_at(tz), max(
            self.ends_at(tz), self.check_in_closes_at(tz)
        )
