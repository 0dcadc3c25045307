"""Supabase-backed attendance ledger."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from kids_checkin.domain.attendance import (
    ApprovalCommit,
    ApprovalOutcome,
    AttendanceDraft,
    AttendanceRecord,
    AttendanceStatus,
)
from kids_checkin.services.checkins import AttendanceLedger

_TABLE = "kid_attendance"
_COLUMNS = (
    "id, child_id, service_id, status, check_in_time, check_out_time, "
    "checked_in_by, approved_by_staff, check_in_request_id, notes"
)
# Postgres function defined in supabase/migrations; runs in one transaction
# holding a row lock on the kids service.
_APPROVE_RPC = "approve_check_in_request"


@dataclass
class SupabaseAttendanceLedger(AttendanceLedger):
    """Supabase implementation for attendance reads and approval commits."""

    client: Client

    def count_checked_in(
        self, service_id: UUID, window_start: datetime, window_end: datetime
    ) -> int:
        """Return how many children are checked in to the session in the window."""
        response = (
            self.client.table(_TABLE)
            .select("id", count="exact")
            .eq("service_id", str(service_id))
            .eq("status", AttendanceStatus.CHECKED_IN.value)
            .gte("check_in_time", window_start.isoformat())
            .lt("check_in_time", window_end.isoformat())
            .execute()
        )
        if response.count is not None:
            return response.count
        return len(response.data or [])

    def find_active(
        self,
        child_id: UUID,
        service_id: UUID,
        window_start: datetime,
        window_end: datetime,
    ) -> AttendanceRecord | None:
        """Return the child's checked-in record within the window, if any."""
        response = (
            self.client.table(_TABLE)
            .select(_COLUMNS)
            .eq("child_id", str(child_id))
            .eq("service_id", str(service_id))
            .eq("status", AttendanceStatus.CHECKED_IN.value)
            .gte("check_in_time", window_start.isoformat())
            .lt("check_in_time", window_end.isoformat())
            .limit(1)
            .execute()
        )
        return _parse_row(response.data[0]) if response.data else None

    def commit_approval(self, draft: AttendanceDraft) -> ApprovalCommit:
        """Insert attendance and approve the request in one database call."""
        response = self.client.rpc(
            _APPROVE_RPC,
            {
                "p_request_id": str(draft.request_id),
                "p_child_id": str(draft.child_id),
                "p_service_id": str(draft.service_id),
                "p_staff_id": str(draft.staff_id),
                "p_approved_by_staff": draft.approved_by_staff,
                "p_checked_in_by": draft.checked_in_by,
                "p_check_in_time": draft.check_in_time.isoformat(),
                "p_max_capacity": draft.max_capacity,
                "p_window_start": draft.window_start.isoformat(),
                "p_window_end": draft.window_end.isoformat(),
                "p_notes": draft.notes,
            },
        ).execute()
        data = response.data
        row = data[0] if isinstance(data, list) and data else data
        if not isinstance(row, dict):
            raise RuntimeError("Approval function returned no result")
        attendance_id = row.get("attendance_id")
        return ApprovalCommit(
            outcome=ApprovalOutcome(row["outcome"]),
            attendance_id=UUID(str(attendance_id)) if attendance_id else None,
        )


def _parse_row(row: dict[str, object]) -> AttendanceRecord:
    request_id = row.get("check_in_request_id")
    check_out = row.get("check_out_time")
    return AttendanceRecord(
        id=UUID(str(row["id"])),
        child_id=UUID(str(row["child_id"])),
        service_id=UUID(str(row["service_id"])),
        status=AttendanceStatus(row["status"]),
        check_in_time=datetime.fromisoformat(str(row["check_in_time"])),
        checked_in_by=str(row.get("checked_in_by") or ""),
        check_in_request_id=UUID(str(request_id)) if request_id else None,
        approved_by_staff=row.get("approved_by_staff"),
        check_out_time=datetime.fromisoformat(str(check_out)) if check_out else None,
        notes=row.get("notes"),
    )
