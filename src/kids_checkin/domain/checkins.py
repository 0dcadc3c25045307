"""Domain models for check-in requests."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from kids_checkin.domain.children import Child, ParentRecord
from kids_checkin.domain.sessions import ServiceSession


class CheckInStatus(Enum):
    """Lifecycle of a check-in request. Only PENDING can move."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not CheckInStatus.PENDING


@dataclass(frozen=True)
class CheckInRequest:
    """A tokenized, time-boxed application to check a child in."""

    id: UUID
    child_id: UUID
    service_id: UUID
    requested_by: UUID
    token: str
    created_at: datetime
    expires_at: datetime
    status: CheckInStatus = CheckInStatus.PENDING
    notes: str | None = None
    rejection_reason: str | None = None
    processed_by: UUID | None = None
    processed_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def can_be_processed(self, now: datetime) -> bool:
        return self.status is CheckInStatus.PENDING and not self.is_expired(now)

    def seconds_until_expiration(self, now: datetime) -> int:
        if self.is_expired(now):
            return 0
        return int((self.expires_at - now).total_seconds())


class CheckInErrorKind(Enum):
    """Reasons a check-in operation can fail."""

    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    WINDOW_CLOSED = "WINDOW_CLOSED"
    AGE_INELIGIBLE = "AGE_INELIGIBLE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    INVALID_STATE = "INVALID_STATE"
    EXPIRED = "EXPIRED"


@dataclass(frozen=True)
class CheckInFailure:
    """A business-rule failure returned instead of a result."""

    kind: CheckInErrorKind
    message: str


@dataclass(frozen=True)
class CheckInRequestDetails:
    """Everything staff need to see after scanning a token."""

    request: CheckInRequest
    child: Child
    service: ServiceSession
    requested_by: ParentRecord | None
    is_expired: bool
    can_be_processed: bool

    @property
    def has_medical_alerts(self) -> bool:
        return bool(self.child.medical_notes and self.child.medical_notes.strip())

    @property
    def has_allergies(self) -> bool:
        return bool(self.child.allergies and self.child.allergies.strip())

    @property
    def has_special_needs(self) -> bool:
        return bool(self.child.special_needs and self.child.special_needs.strip())


@dataclass(frozen=True)
class CheckInApproval:
    """Outcome of a successful approval."""

    request_id: UUID
    attendance_id: UUID
    approved_by: str
    check_in_time: datetime


@dataclass(frozen=True)
class CheckInRejection:
    """Outcome of a successful rejection."""

    request_id: UUID
    rejected_by: str
    reason: str
