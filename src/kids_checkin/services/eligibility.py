"""Pure eligibility rules for creating check-in requests."""

from datetime import UTC, datetime, tzinfo

from kids_checkin.domain.children import Child, age_group_for, age_in_years
from kids_checkin.domain.sessions import ServiceSession


def is_window_open(session: ServiceSession, now: datetime, tz: tzinfo = UTC) -> bool:
    """Return true when the session is active and accepting check-ins at ``now``.

    The window runs from ``check_in_opens_minutes_before`` ahead of the start
    time up to ``check_in_closes_minutes_after`` past it. The session date and
    time of day are read in ``tz``.
    """
    if not session.is_active:
        return False
    return session.check_in_opens_at(tz) <= now < session.check_in_closes_at(tz)


def is_age_eligible(
    child: Child, session: ServiceSession, now: datetime, tz: tzinfo = UTC
) -> bool:
    """Return true when the child's age at ``now`` fits the session.

    Sessions that list age groups are matched on group membership; otherwise
    the inclusive ``min_age``/``max_age`` range applies.
    """
    age = age_in_years(child.date_of_birth, now.astimezone(tz).date())
    if session.age_groups:
        return age_group_for(age) in session.age_groups
    return session.min_age <= age <= session.max_age
