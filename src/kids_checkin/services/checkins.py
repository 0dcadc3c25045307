"""Check-in request workflow: create, resolve, approve, reject, cancel."""

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, tzinfo
from typing import Protocol
from uuid import UUID

from kids_checkin.domain.attendance import (
    ApprovalCommit,
    ApprovalOutcome,
    AttendanceDraft,
    AttendanceRecord,
)
from kids_checkin.domain.checkins import (
    CheckInApproval,
    CheckInErrorKind,
    CheckInFailure,
    CheckInRejection,
    CheckInRequest,
    CheckInRequestDetails,
    CheckInStatus,
)
from kids_checkin.domain.children import Child, ParentRecord, StaffMember
from kids_checkin.domain.sessions import ServiceSession
from kids_checkin.services.audit import AuditService
from kids_checkin.services.clock import Clock, utc_now
from kids_checkin.services.eligibility import is_age_eligible, is_window_open
from kids_checkin.services.tokens import TokenIssuer

logger = logging.getLogger(__name__)


class CheckInStoreError(RuntimeError):
    """Raised by request stores when a write violates a constraint."""


class DuplicatePendingRequestError(CheckInStoreError):
    """A pending request already exists for the child and service."""


class TokenCollisionError(CheckInStoreError):
    """The generated token is already in use."""


class CheckInRequestRepository(Protocol):
    """Persistence interface for check-in requests."""

    def create_request(  # noqa: PLR0913
        self,
        child_id: UUID,
        service_id: UUID,
        requested_by: UUID,
        token: str,
        created_at: datetime,
        expires_at: datetime,
        notes: str | None,
    ) -> CheckInRequest:
        """Insert a PENDING request and return it."""

    def get_by_id(self, request_id: UUID) -> CheckInRequest | None:
        """Return a request by id, if present."""

    def get_by_token(self, token: str) -> CheckInRequest | None:
        """Return a request by token, if present."""

    def find_by_child_and_service(
        self, child_id: UUID, service_id: UUID, status: CheckInStatus
    ) -> CheckInRequest | None:
        """Return the request for a child and service in ``status``."""

    def list_by_status_expiring_before(
        self, status: CheckInStatus, before: datetime
    ) -> list[CheckInRequest]:
        """Return requests in ``status`` whose expiry is before ``before``."""

    def list_for_children(
        self, child_ids: list[UUID], status: CheckInStatus
    ) -> list[CheckInRequest]:
        """Return requests for any of the children in ``status``."""

    def list_for_service(
        self, service_id: UUID, status: CheckInStatus
    ) -> list[CheckInRequest]:
        """Return requests for a service in ``status``."""

    def transition(  # noqa: PLR0913
        self,
        request_id: UUID,
        status: CheckInStatus,
        processed_at: datetime,
        processed_by: UUID | None = None,
        rejection_reason: str | None = None,
    ) -> CheckInRequest | None:
        """Move a PENDING request to ``status``; None if it was no longer pending."""

    def expire_pending_before(self, now: datetime) -> list[CheckInRequest]:
        """Mark every stale PENDING request EXPIRED in one write and return them."""


class DirectoryRepository(Protocol):
    """Read access to children, services and people owned elsewhere."""

    def get_child(self, child_id: UUID) -> Child | None:
        """Return a child by id, if present."""

    def list_children(self, parent_id: UUID) -> list[Child]:
        """Return children where the parent is a guardian."""

    def get_service(self, service_id: UUID) -> ServiceSession | None:
        """Return a kids service session by id, if present."""

    def get_parent(self, parent_id: UUID) -> ParentRecord | None:
        """Return a parent profile by id, if present."""

    def get_staff(self, staff_id: UUID) -> StaffMember | None:
        """Return a staff profile by id, if present."""


class AttendanceLedger(Protocol):
    """Attendance records owned by the attendance subsystem."""

    def count_checked_in(
        self, service_id: UUID, window_start: datetime, window_end: datetime
    ) -> int:
        """Return how many children are checked in to the session in the window."""

    def find_active(
        self,
        child_id: UUID,
        service_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> AttendanceRecord | None:
        """Return the child's active check-in for the service within the window."""

    def commit_approval(self, draft: AttendanceDraft) -> ApprovalCommit:
        """Atomically re-check capacity and duplicates, insert, and approve."""


@dataclass
class CheckInService:
    """Drives a check-in request from PENDING to exactly one terminal state."""

    repository: CheckInRequestRepository
    directory: DirectoryRepository
    ledger: AttendanceLedger
    audit_service: AuditService
    token_issuer: TokenIssuer = field(default_factory=TokenIssuer)
    clock: Clock = utc_now
    timezone: tzinfo = UTC
    max_token_attempts: int = 3

    def create(
        self,
        parent_id: UUID,
        child_id: UUID,
        service_id: UUID,
        notes: str | None = None,
    ) -> CheckInRequest | CheckInFailure:
        """Create a request, or return the child's existing pending one."""
        if self.directory.get_parent(parent_id) is None:
            return _failure(
                CheckInErrorKind.NOT_FOUND, f"Parent not found: {parent_id}"
            )
        child = self.directory.get_child(child_id)
        if child is None or not child.is_active:
            return _failure(CheckInErrorKind.NOT_FOUND, f"Child not found: {child_id}")
        if not child.has_parent(parent_id):
            return _failure(
                CheckInErrorKind.NOT_AUTHORIZED,
                "You are not authorized to create check-in requests for this child",
            )
        service = self.directory.get_service(service_id)
        if service is None:
            return _failure(
                CheckInErrorKind.NOT_FOUND, f"Kids service not found: {service_id}"
            )

        now = self.clock()
        if not is_window_open(service, now, self.timezone):
            return _failure(
                CheckInErrorKind.WINDOW_CLOSED,
                "Check-in is not currently open for this service. Check-in opens "
                f"{service.check_in_opens_minutes_before} minutes before the service "
                "starts.",
            )
        if not is_age_eligible(child, service, now, self.timezone):
            return _failure(
                CheckInErrorKind.AGE_INELIGIBLE,
                "Child does not meet age requirements for this service. "
                f"{_accepted_ages(service)}",
            )

        existing = self.repository.find_by_child_and_service(
            child_id, service_id, CheckInStatus.PENDING
        )
        if existing is not None:
            if not existing.is_expired(now):
                return existing
            self._expire(existing, now)
        return self._insert(parent_id, child_id, service_id, notes, now)

    def resolve_by_token(self, token: str) -> CheckInRequestDetails | CheckInFailure:
        """Return request details for staff display."""
        request = self.repository.get_by_token(token)
        if request is None:
            return _invalid_token_failure()
        now = self.clock()
        if request.is_expired(now):
            return _failure(
                CheckInErrorKind.EXPIRED,
                "Check-in request has expired. Please generate a new QR code.",
            )
        child = self.directory.get_child(request.child_id)
        service = self.directory.get_service(request.service_id)
        if child is None or service is None:
            return _failure(
                CheckInErrorKind.NOT_FOUND, "Child or service for this request is gone"
            )
        return CheckInRequestDetails(
            request=request,
            child=child,
            service=service,
            requested_by=self.directory.get_parent(request.requested_by),
            is_expired=False,
            can_be_processed=request.can_be_processed(now),
        )

    def approve(
        self, token: str, staff_id: UUID, notes: str | None = None
    ) -> CheckInApproval | CheckInFailure:
        """Approve a pending request and record the child's attendance."""
        resolved = self._resolve_for_staff(token, staff_id)
        if isinstance(resolved, CheckInFailure):
            return resolved
        request, staff = resolved

        service = self.directory.get_service(request.service_id)
        if service is None:
            return _failure(
                CheckInErrorKind.NOT_FOUND,
                f"Kids service not found: {request.service_id}",
            )
        window_start, window_end = service.attendance_window(self.timezone)
        checked_in = self.ledger.count_checked_in(service.id, window_start, window_end)
        if checked_in >= service.max_capacity:
            return _capacity_failure()
        if self.ledger.find_active(
            request.child_id, service.id, window_start, window_end
        ):
            return _already_checked_in_failure()

        parent = self.directory.get_parent(request.requested_by)
        now = self.clock()
        commit = self.ledger.commit_approval(
            AttendanceDraft(
                request_id=request.id,
                child_id=request.child_id,
                service_id=service.id,
                staff_id=staff.id,
                approved_by_staff=staff.full_name,
                checked_in_by=parent.full_name if parent else str(request.requested_by),
                check_in_time=now,
                max_capacity=service.max_capacity,
                window_start=window_start,
                window_end=window_end,
                notes=notes or request.notes,
            )
        )
        match commit.outcome:
            case ApprovalOutcome.APPROVED:
                pass
            case ApprovalOutcome.CAPACITY_EXCEEDED:
                return _capacity_failure()
            case ApprovalOutcome.ALREADY_CHECKED_IN:
                return _already_checked_in_failure()
            case ApprovalOutcome.NOT_PENDING:
                return self._lost_race(request)
        if commit.attendance_id is None:
            raise RuntimeError("Approval committed without an attendance record")

        approved = replace(
            request,
            status=CheckInStatus.APPROVED,
            processed_by=staff.id,
            processed_at=now,
        )
        self.audit_service.record_transition(
            staff.id, approved, "approved", CheckInStatus.PENDING
        )
        logger.info(
            "Check-in request approved",
            extra={
                "request_id": str(request.id),
                "attendance_id": str(commit.attendance_id),
            },
        )
        return CheckInApproval(
            request_id=request.id,
            attendance_id=commit.attendance_id,
            approved_by=staff.full_name,
            check_in_time=now,
        )

    def reject(
        self, token: str, staff_id: UUID, reason: str
    ) -> CheckInRejection | CheckInFailure:
        """Reject a pending request with a reason for the parent."""
        resolved = self._resolve_for_staff(token, staff_id)
        if isinstance(resolved, CheckInFailure):
            return resolved
        request, staff = resolved

        rejected = self.repository.transition(
            request.id,
            CheckInStatus.REJECTED,
            processed_at=self.clock(),
            processed_by=staff.id,
            rejection_reason=reason,
        )
        if rejected is None:
            return self._lost_race(request)
        self.audit_service.record_transition(
            staff.id, rejected, "rejected", CheckInStatus.PENDING
        )
        logger.info("Check-in request rejected", extra={"request_id": str(request.id)})
        return CheckInRejection(
            request_id=request.id, rejected_by=staff.full_name, reason=reason
        )

    def cancel(
        self, request_id: UUID, parent_id: UUID
    ) -> CheckInRequest | CheckInFailure:
        """Cancel a pending request on behalf of the child's parent."""
        request = self.repository.get_by_id(request_id)
        if request is None:
            return _failure(
                CheckInErrorKind.NOT_FOUND, f"Check-in request not found: {request_id}"
            )
        child = self.directory.get_child(request.child_id)
        if child is None or not child.has_parent(parent_id):
            return _failure(
                CheckInErrorKind.NOT_AUTHORIZED,
                "You are not authorized to cancel this check-in request",
            )
        if request.status is not CheckInStatus.PENDING:
            return _failure(
                CheckInErrorKind.INVALID_STATE,
                "Cannot cancel check-in request. Current status: "
                f"{request.status.value}",
            )
        cancelled = self.repository.transition(
            request.id, CheckInStatus.CANCELLED, processed_at=self.clock()
        )
        if cancelled is None:
            return self._lost_race(request)
        self.audit_service.record_transition(
            parent_id, cancelled, "cancelled", CheckInStatus.PENDING
        )
        return cancelled

    def list_active(self, parent_id: UUID) -> list[CheckInRequest]:
        """Return the parent's pending, unexpired requests, newest first."""
        children = self.directory.list_children(parent_id)
        if not children:
            return []
        requests = self.repository.list_for_children(
            [child.id for child in children], CheckInStatus.PENDING
        )
        now = self.clock()
        active = [request for request in requests if not request.is_expired(now)]
        return sorted(active, key=lambda request: request.created_at, reverse=True)

    def list_pending_for_service(
        self, service_id: UUID, staff_id: UUID
    ) -> list[CheckInRequest] | CheckInFailure:
        """Return the staff queue for a service, oldest first."""
        staff = self.directory.get_staff(staff_id)
        if staff is None or not staff.is_staff:
            return _staff_only_failure()
        if self.directory.get_service(service_id) is None:
            return _failure(
                CheckInErrorKind.NOT_FOUND, f"Kids service not found: {service_id}"
            )
        now = self.clock()
        pending = [
            request
            for request in self.repository.list_for_service(
                service_id, CheckInStatus.PENDING
            )
            if not request.is_expired(now)
        ]
        return sorted(pending, key=lambda request: request.created_at)

    def _resolve_for_staff(
        self, token: str, staff_id: UUID
    ) -> tuple[CheckInRequest, StaffMember] | CheckInFailure:
        request = self.repository.get_by_token(token)
        if request is None:
            return _invalid_token_failure()
        staff = self.directory.get_staff(staff_id)
        if staff is None or not staff.is_staff:
            return _staff_only_failure()
        if request.status is not CheckInStatus.PENDING:
            return _not_pending_failure(request)
        if request.is_expired(self.clock()):
            return _failure(
                CheckInErrorKind.EXPIRED,
                "Check-in request has expired. Please generate a new QR code.",
            )
        return request, staff

    def _insert(
        self,
        parent_id: UUID,
        child_id: UUID,
        service_id: UUID,
        notes: str | None,
        now: datetime,
    ) -> CheckInRequest:
        for attempt in range(1, self.max_token_attempts + 1):
            issued = self.token_issuer.issue()
            try:
                request = self.repository.create_request(
                    child_id=child_id,
                    service_id=service_id,
                    requested_by=parent_id,
                    token=issued.token,
                    created_at=now,
                    expires_at=issued.expires_at,
                    notes=notes,
                )
            except TokenCollisionError:
                logger.warning("Check-in token collision", extra={"attempt": attempt})
                continue
            except DuplicatePendingRequestError:
                visible = self.repository.find_by_child_and_service(
                    child_id, service_id, CheckInStatus.PENDING
                )
                if visible is not None:
                    return visible
                continue
            self.audit_service.record_transition(parent_id, request, "created", None)
            logger.info(
                "Check-in request created", extra={"request_id": str(request.id)}
            )
            return request
        raise CheckInStoreError(
            "Could not store a check-in request after "
            f"{self.max_token_attempts} attempts"
        )

    def _lost_race(self, request: CheckInRequest) -> CheckInFailure:
        current = self.repository.get_by_id(request.id) or request
        logger.warning(
            "Check-in request left PENDING concurrently",
            extra={"request_id": str(request.id), "status": current.status.value},
        )
        return _not_pending_failure(current)

    def _expire(self, request: CheckInRequest, now: datetime) -> None:
        expired = self.repository.transition(
            request.id, CheckInStatus.EXPIRED, processed_at=now
        )
        if expired is not None:
            self.audit_service.record_transition(
                None, expired, "expired", CheckInStatus.PENDING
            )


def _failure(kind: CheckInErrorKind, message: str) -> CheckInFailure:
    return CheckInFailure(kind=kind, message=message)


def _accepted_ages(service: ServiceSession) -> str:
    if service.age_groups:
        groups = ", ".join(sorted(group.value for group in service.age_groups))
        return f"Service accepts age groups: {groups}."
    return f"Service accepts ages {service.min_age}-{service.max_age}."


def _capacity_failure() -> CheckInFailure:
    return _failure(
        CheckInErrorKind.CAPACITY_EXCEEDED,
        "Service is at capacity. Cannot complete check-in.",
    )


def _already_checked_in_failure() -> CheckInFailure:
    return _failure(
        CheckInErrorKind.ALREADY_CHECKED_IN,
        "Child is already checked in to this service",
    )


def _not_pending_failure(request: CheckInRequest) -> CheckInFailure:
    return _failure(
        CheckInErrorKind.INVALID_STATE,
        "Check-in request cannot be processed. Current status: "
        f"{request.status.value}",
    )


def _invalid_token_failure() -> CheckInFailure:
    return _failure(CheckInErrorKind.NOT_FOUND, "Invalid check-in request token")


def _staff_only_failure() -> CheckInFailure:
    return _failure(
        CheckInErrorKind.NOT_AUTHORIZED,
        "Only staff members can process check-in requests",
    )
