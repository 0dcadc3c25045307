"""Domain models for the attendance ledger."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class AttendanceStatus(Enum):
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


@dataclass(frozen=True)
class AttendanceRecord:
    """A child's attendance at one service session."""

    id: UUID
    child_id: UUID
    service_id: UUID
    status: AttendanceStatus
    check_in_time: datetime
    checked_in_by: str
    check_in_request_id: UUID | None = None
    approved_by_staff: str | None = None
    check_out_time: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True)
class AttendanceDraft:
    """Attendance row to insert when a check-in request is approved."""

    request_id: UUID
    child_id: UUID
    service_id: UUID
    staff_id: UUID
    approved_by_staff: str
    checked_in_by: str
    check_in_time: datetime
    max_capacity: int
    window_start: datetime
    window_end: datetime
    notes: str | None = None


class ApprovalOutcome(Enum):
    """Result of the atomic attendance insert performed on approval."""

    APPROVED = "APPROVED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    NOT_PENDING = "NOT_PENDING"


@dataclass(frozen=True)
class ApprovalCommit:
    """What the ledger did when asked to commit an approval."""

    outcome: ApprovalOutcome
    attendance_id: UUID | None = None
