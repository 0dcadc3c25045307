"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID, uuid4

import pytest

from kids_checkin.config import Settings
from kids_checkin.containers import AppContainer
from kids_checkin.domain.attendance import (
    ApprovalCommit,
    ApprovalOutcome,
    AttendanceDraft,
    AttendanceRecord,
    AttendanceStatus,
)
from kids_checkin.domain.checkins import CheckInRequest, CheckInStatus
from kids_checkin.domain.children import Child, ParentRecord, StaffMember
from kids_checkin.domain.sessions import ServiceSession
from kids_checkin.services.audit import AuditRepository, AuditService
from kids_checkin.services.checkins import (
    AttendanceLedger,
    CheckInRequestRepository,
    CheckInService,
    DirectoryRepository,
    DuplicatePendingRequestError,
    TokenCollisionError,
)
from kids_checkin.services.expiry import ExpirySweeper
from kids_checkin.services.tokens import TokenIssuer

SERVICE_DATE = date(2026, 3, 1)
# Ten minutes before a 10:00 service; check-in is open from 09:30 to 10:15.
FIXED_NOW = datetime(2026, 3, 1, 9, 50, tzinfo=UTC)
FAKE_SERVICE_KEY = "eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZV9yb2xlIn0.signature"


@dataclass
class FixedClock:
    """Clock that only moves when a test tells it to."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@dataclass
class InMemoryCheckInRequestRepository(CheckInRequestRepository):
    """In-memory request store enforcing the same unique constraints as Postgres."""

    requests: dict[UUID, CheckInRequest] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)

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
        with self.lock:
            for existing in self.requests.values():
                if existing.token == token:
                    raise TokenCollisionError("check_in_requests_token_key")
                if (
                    existing.child_id == child_id
                    and existing.service_id == service_id
                    and existing.status is CheckInStatus.PENDING
                ):
                    raise DuplicatePendingRequestError(
                        "check_in_requests_one_pending_idx"
                    )
            request = CheckInRequest(
                id=uuid4(),
                child_id=child_id,
                service_id=service_id,
                requested_by=requested_by,
                token=token,
                created_at=created_at,
                expires_at=expires_at,
                notes=notes,
            )
            self.requests[request.id] = request
            return request

    def get_by_id(self, request_id: UUID) -> CheckInRequest | None:
        return self.requests.get(request_id)

    def get_by_token(self, token: str) -> CheckInRequest | None:
        for request in self.requests.values():
            if request.token == token:
                return request
        return None

    def find_by_child_and_service(
        self, child_id: UUID, service_id: UUID, status: CheckInStatus
    ) -> CheckInRequest | None:
        for request in self.requests.values():
            if (
                request.child_id == child_id
                and request.service_id == service_id
                and request.status is status
            ):
                return request
        return None

    def list_by_status_expiring_before(
        self, status: CheckInStatus, before: datetime
    ) -> list[CheckInRequest]:
        return [
            request
            for request in self.requests.values()
            if request.status is status and request.expires_at < before
        ]

    def list_for_children(
        self, child_ids: list[UUID], status: CheckInStatus
    ) -> list[CheckInRequest]:
        return [
            request
            for request in self.requests.values()
            if request.child_id in child_ids and request.status is status
        ]

    def list_for_service(
        self, service_id: UUID, status: CheckInStatus
    ) -> list[CheckInRequest]:
        return [
            request
            for request in self.requests.values()
            if request.service_id == service_id and request.status is status
        ]

    def transition(  # noqa: PLR0913
        self,
        request_id: UUID,
        status: CheckInStatus,
        processed_at: datetime,
        processed_by: UUID | None = None,
        rejection_reason: str | None = None,
    ) -> CheckInRequest | None:
        with self.lock:
            current = self.requests.get(request_id)
            if current is None or current.status is not CheckInStatus.PENDING:
                return None
            updated = replace(
                current,
                status=status,
                processed_at=processed_at,
                processed_by=processed_by,
                rejection_reason=rejection_reason,
            )
            self.requests[request_id] = updated
            return updated

    def expire_pending_before(self, now: datetime) -> list[CheckInRequest]:
        with self.lock:
            expired = []
            for request in self.list_by_status_expiring_before(
                CheckInStatus.PENDING, now
            ):
                updated = replace(
                    request, status=CheckInStatus.EXPIRED, processed_at=now
                )
                self.requests[request.id] = updated
                expired.append(updated)
            return expired


@dataclass
class InMemoryDirectory(DirectoryRepository):
    """In-memory children, services and profiles."""

    children: dict[UUID, Child] = field(default_factory=dict)
    services: dict[UUID, ServiceSession] = field(default_factory=dict)
    parents: dict[UUID, ParentRecord] = field(default_factory=dict)
    staff: dict[UUID, StaffMember] = field(default_factory=dict)

    def get_child(self, child_id: UUID) -> Child | None:
        return self.children.get(child_id)

    def list_children(self, parent_id: UUID) -> list[Child]:
        return [
            child for child in self.children.values() if child.has_parent(parent_id)
        ]

    def get_service(self, service_id: UUID) -> ServiceSession | None:
        return self.services.get(service_id)

    def get_parent(self, parent_id: UUID) -> ParentRecord | None:
        return self.parents.get(parent_id)

    def get_staff(self, staff_id: UUID) -> StaffMember | None:
        return self.staff.get(staff_id)

    def add_parent(self, full_name: str = "Pat Parent") -> ParentRecord:
        parent = ParentRecord(id=uuid4(), full_name=full_name)
        self.parents[parent.id] = parent
        return parent

    def add_child(
        self,
        parent: ParentRecord,
        date_of_birth: date = date(2019, 1, 15),
        **overrides: object,
    ) -> Child:
        child = Child(
            id=uuid4(),
            first_name=str(overrides.pop("first_name", "Sam")),
            last_name=str(overrides.pop("last_name", "Parent")),
            date_of_birth=date_of_birth,
            primary_parent_id=parent.id,
            **overrides,  # type: ignore[arg-type]
        )
        self.children[child.id] = child
        return child

    def add_service(self, **overrides: object) -> ServiceSession:
        values: dict[str, object] = {
            "id": uuid4(),
            "name": "Sunday Kids",
            "service_date": SERVICE_DATE,
            "start_time": time(10, 0),
            "end_time": time(11, 30),
            "location": "Room 101",
            "max_capacity": 10,
            "min_age": 5,
            "max_age": 12,
        }
        values.update(overrides)
        service = ServiceSession(**values)  # type: ignore[arg-type]
        self.services[service.id] = service
        return service

    def add_staff(self, full_name: str = "Sky Staff", is_staff: bool = True):
        member = StaffMember(id=uuid4(), full_name=full_name, is_staff=is_staff)
        self.staff[member.id] = member
        return member


@dataclass
class InMemoryAttendanceLedger(AttendanceLedger):
    """Attendance ledger that commits approvals under the request store lock."""

    requests: InMemoryCheckInRequestRepository
    records: dict[UUID, AttendanceRecord] = field(default_factory=dict)

    def count_checked_in(
        self, service_id: UUID, window_start: datetime, window_end: datetime
    ) -> int:
        return sum(
            1
            for record in self.records.values()
            if record.service_id == service_id
            and record.status is AttendanceStatus.CHECKED_IN
            and window_start <= record.check_in_time < window_end
        )

    def find_active(
        self,
        child_id: UUID,
        service_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> AttendanceRecord | None:
        for record in self.records.values():
            if (
                record.child_id == child_id
                and record.service_id == service_id
                and record.status is AttendanceStatus.CHECKED_IN
                and window_start <= record.check_in_time < window_end
            ):
                return record
        return None

    def commit_approval(self, draft: AttendanceDraft) -> ApprovalCommit:
        with self.requests.lock:
            if self.count_checked_in(
                draft.service_id, draft.window_start, draft.window_end
            ) >= draft.max_capacity:
                return ApprovalCommit(ApprovalOutcome.CAPACITY_EXCEEDED)
            if self.find_active(
                draft.child_id, draft.service_id, draft.window_start, draft.window_end
            ):
                return ApprovalCommit(ApprovalOutcome.ALREADY_CHECKED_IN)
            approved = self.requests.transition(
                draft.request_id,
                CheckInStatus.APPROVED,
                processed_at=draft.check_in_time,
                processed_by=draft.staff_id,
            )
            if approved is None:
                return ApprovalCommit(ApprovalOutcome.NOT_PENDING)
            record = self.check_in(
                draft.child_id,
                draft.service_id,
                draft.check_in_time,
                request_id=draft.request_id,
                approved_by_staff=draft.approved_by_staff,
                checked_in_by=draft.checked_in_by,
                notes=draft.notes,
            )
            return ApprovalCommit(ApprovalOutcome.APPROVED, record.id)

    def check_in(  # noqa: PLR0913
        self,
        child_id: UUID,
        service_id: UUID,
        at: datetime,
        request_id: UUID | None = None,
        approved_by_staff: str | None = None,
        checked_in_by: str = "front desk",
        notes: str | None = None,
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            id=uuid4(),
            child_id=child_id,
            service_id=service_id,
            status=AttendanceStatus.CHECKED_IN,
            check_in_time=at,
            checked_in_by=checked_in_by,
            check_in_request_id=request_id,
            approved_by_staff=approved_by_staff,
            notes=notes,
        )
        self.records[record.id] = record
        return record


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[dict[str, object]] = field(default_factory=list)

    def create_event(  # noqa: PLR0913
        self,
        actor_id: UUID | None,
        entity_type: str,
        entity_id: UUID,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        self.events.append(
            {
                "actor_id": actor_id,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event_type": event_type,
                "before": before,
                "after": after,
            }
        )

    def list_events(self, entity_id: UUID, limit: int) -> list[dict[str, object]]:
        matching = [event for event in self.events if event["entity_id"] == entity_id]
        return list(reversed(matching))[:limit]

    def event_types(self, entity_id: UUID) -> list[str]:
        return [
            str(event["event_type"])
            for event in self.events
            if event["entity_id"] == entity_id
        ]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=FAKE_SERVICE_KEY,
        admin_token="admin-token",
        sweep_interval_seconds=0,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def request_repository() -> InMemoryCheckInRequestRepository:
    return InMemoryCheckInRequestRepository()


@pytest.fixture
def directory() -> InMemoryDirectory:
    return InMemoryDirectory()


@pytest.fixture
def ledger(
    request_repository: InMemoryCheckInRequestRepository,
) -> InMemoryAttendanceLedger:
    return InMemoryAttendanceLedger(requests=request_repository)


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def audit_service(audit_repository: InMemoryAuditRepository) -> AuditService:
    return AuditService(audit_repository)


@pytest.fixture
def checkin_service(
    request_repository: InMemoryCheckInRequestRepository,
    directory: InMemoryDirectory,
    ledger: InMemoryAttendanceLedger,
    audit_service: AuditService,
    clock: FixedClock,
) -> CheckInService:
    return CheckInService(
        repository=request_repository,
        directory=directory,
        ledger=ledger,
        audit_service=audit_service,
        token_issuer=TokenIssuer(clock=clock),
        clock=clock,
    )


@pytest.fixture
def expiry_sweeper(
    request_repository: InMemoryCheckInRequestRepository,
    audit_service: AuditService,
    clock: FixedClock,
) -> ExpirySweeper:
    return ExpirySweeper(
        repository=request_repository, audit_service=audit_service, clock=clock
    )


@pytest.fixture
def parent(directory: InMemoryDirectory) -> ParentRecord:
    return directory.add_parent()


@pytest.fixture
def child(directory: InMemoryDirectory, parent: ParentRecord) -> Child:
    return directory.add_child(parent, allergies="peanuts")


@pytest.fixture
def service(directory: InMemoryDirectory) -> ServiceSession:
    return directory.add_service()


@pytest.fixture
def staff(directory: InMemoryDirectory) -> StaffMember:
    return directory.add_staff()


@pytest.fixture
def container(
    settings: Settings,
    checkin_service: CheckInService,
    expiry_sweeper: ExpirySweeper,
    audit_service: AuditService,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        checkin_service=checkin_service,
        expiry_sweeper=expiry_sweeper,
        audit_service=audit_service,
    )
