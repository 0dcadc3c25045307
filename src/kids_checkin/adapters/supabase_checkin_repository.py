"""Supabase-backed check-in request repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client, PostgrestAPIError

from kids_checkin.domain.checkins import CheckInRequest, CheckInStatus
from kids_checkin.services.checkins import (
    CheckInRequestRepository,
    DuplicatePendingRequestError,
    TokenCollisionError,
)

_TABLE = "check_in_requests"
_COLUMNS = (
    "id, child_id, service_id, requested_by, token, created_at, expires_at, "
    "status, notes, rejection_reason, processed_by, processed_at"
)
_UNIQUE_VIOLATION = "23505"
_TOKEN_CONSTRAINT = "check_in_requests_token_key"


@dataclass
class SupabaseCheckInRequestRepository(CheckInRequestRepository):
    """Supabase implementation for check-in requests."""

    client: Client

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
        """Insert a pending request, translating unique violations."""
        try:
            response = (
                self.client.table(_TABLE)
                .insert(
                    {
                        "child_id": str(child_id),
                        "service_id": str(service_id),
                        "requested_by": str(requested_by),
                        "token": token,
                        "created_at": created_at.isoformat(),
                        "expires_at": expires_at.isoformat(),
                        "status": CheckInStatus.PENDING.value,
                        "notes": notes,
                    }
                )
                .execute()
            )
        except PostgrestAPIError as exc:
            if exc.code != _UNIQUE_VIOLATION:
                raise
            if _TOKEN_CONSTRAINT in (exc.message or ""):
                raise TokenCollisionError(exc.message) from exc
            raise DuplicatePendingRequestError(exc.message) from exc
        if not response.data:
            raise RuntimeError("Failed to create check-in request")
        return _parse_row(response.data[0])

    def get_by_id(self, request_id: UUID) -> CheckInRequest | None:
        """Return a request by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("id", str(request_id))
            .limit(1)
            .execute()
        )
        return _parse_row(response.data[0]) if response.data else None

    def get_by_token(self, token: str) -> CheckInRequest | None:
        """Return a request by token, if present."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("token", token)
            .limit(1)
            .execute()
        )
        return _parse_row(response.data[0]) if response.data else None

    def find_by_child_and_service(
        self, child_id: UUID, service_id: UUID, status: CheckInStatus
    ) -> CheckInRequest | None:
        """Return the newest request for a child and service in ``status``."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("child_id", str(child_id))
            .eq("service_id", str(service_id))
            .eq("status", status.value)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        return _parse_row(response.data[0]) if response.data else None

    def list_by_status_expiring_before(
        self, status: CheckInStatus, before: datetime
    ) -> list[CheckInRequest]:
        """Return requests in ``status`` that expired before ``before``."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("status", status.value)
            .lt("expires_at", before.isoformat())
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    def list_for_children(
        self, child_ids: list[UUID], status: CheckInStatus
    ) -> list[CheckInRequest]:
        """Return requests for the given children, newest first."""
        if not child_ids:
            return []
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .in_("child_id", [str(child_id) for child_id in child_ids])
            .eq("status", status.value)
            .order("created_at", desc=True)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    def list_for_service(
        self, service_id: UUID, status: CheckInStatus
    ) -> list[CheckInRequest]:
        """Return requests for a service, oldest first."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("service_id", str(service_id))
            .eq("status", status.value)
            .order("created_at", desc=False)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    def transition(  # noqa: PLR0913
        self,
        request_id: UUID,
        status: CheckInStatus,
        processed_at: datetime,
        processed_by: UUID | None = None,
        rejection_reason: str | None = None,
    ) -> CheckInRequest | None:
        """Update the row only while it is still PENDING."""
        payload: dict[str, object] = {
            "status": status.value,
            "processed_at": processed_at.isoformat(),
        }
        if processed_by is not None:
            payload["processed_by"] = str(processed_by)
        if rejection_reason is not None:
            payload["rejection_reason"] = rejection_reason
        response = (
            self.client.table(_TABLE)
            .update(payload)
            .eq("id", str(request_id))
            .eq("status", CheckInStatus.PENDING.value)
            .execute()
        )
        return _parse_row(response.data[0]) if response.data else None

    def expire_pending_before(self, now: datetime) -> list[CheckInRequest]:
        """Expire every overdue PENDING row with one UPDATE."""
        response = (
            self.client.table(_TABLE)
            .update(
                {
                    "status": CheckInStatus.EXPIRED.value,
                    "processed_at": now.isoformat(),
                }
            )
            .eq("status", CheckInStatus.PENDING.value)
            .lt("expires_at", now.isoformat())
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]


def _parse_row(row: dict[str, object]) -> CheckInRequest:
    return CheckInRequest(
        id=UUID(str(row["id"])),
        child_id=UUID(str(row["child_id"])),
        service_id=UUID(str(row["service_id"])),
        requested_by=UUID(str(row["requested_by"])),
        token=str(row["token"]),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        expires_at=datetime.fromisoformat(str(row["expires_at"])),
        status=CheckInStatus(row["status"]),
        notes=_optional_str(row.get("notes")),
        rejection_reason=_optional_str(row.get("rejection_reason")),
        processed_by=UUID(str(row["processed_by"]))
        if row.get("processed_by")
        else None,
        processed_at=datetime.fromisoformat(str(row["processed_at"]))
        if row.get("processed_at")
        else None,
    )


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None
