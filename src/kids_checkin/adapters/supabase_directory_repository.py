"""Supabase reads of children, kids services and user profiles."""

from dataclasses import dataclass
from datetime import date, time
from uuid import UUID

from supabase import Client

from kids_checkin.domain.children import AgeGroup, Child, ParentRecord, StaffMember
from kids_checkin.domain.sessions import ServiceSession
from kids_checkin.services.checkins import DirectoryRepository

_KID_COLUMNS = (
    "id, first_name, last_name, date_of_birth, primary_parent_id, "
    "secondary_parent_id, medical_notes, allergies, special_needs, is_active"
)
_SERVICE_COLUMNS = (
    "id, name, service_date, start_time, end_time, location, max_capacity, "
    "min_age, max_age, age_groups, is_active, check_in_starts_minutes_before, "
    "check_in_ends_minutes_after"
)
_PROFILE_COLUMNS = "id, first_name, last_name, email, phone, role"
_STAFF_ROLES = {"STAFF", "ADMIN", "VOLUNTEER"}


@dataclass
class SupabaseDirectoryRepository(DirectoryRepository):
    """Read-only view over tables owned by the wider app."""

    client: Client

    def get_child(self, child_id: UUID) -> Child | None:
        """Return a child by id, if present."""
        response = (
            self.client.table("kids")
            .select(_KID_COLUMNS)
            .eq("id", str(child_id))
            .limit(1)
            .execute()
        )
        return _parse_child(response.data[0]) if response.data else None

    def list_children(self, parent_id: UUID) -> list[Child]:
        """Return children for which the parent is either guardian."""
        response = (
            self.client.table("kids")
            .select(_KID_COLUMNS)
            .or_(
                f"primary_parent_id.eq.{parent_id},"
                f"secondary_parent_id.eq.{parent_id}"
            )
            .execute()
        )
        return [_parse_child(row) for row in response.data or []]

    def get_service(self, service_id: UUID) -> ServiceSession | None:
        """Return a kids service by id, if present."""
        response = (
            self.client.table("kids_services")
            .select(_SERVICE_COLUMNS)
            .eq("id", str(service_id))
            .limit(1)
            .execute()
        )
        return _parse_service(response.data[0]) if response.data else None

    def get_parent(self, parent_id: UUID) -> ParentRecord | None:
        """Return a guardian profile by id, if present."""
        row = self._get_profile(parent_id)
        if row is None:
            return None
        return ParentRecord(
            id=UUID(str(row["id"])),
            full_name=_full_name(row),
            email=row.get("email"),
            phone=row.get("phone"),
        )

    def get_staff(self, staff_id: UUID) -> StaffMember | None:
        """Return a profile by id, flagged by whether it holds a staff role."""
        row = self._get_profile(staff_id)
        if row is None:
            return None
        return StaffMember(
            id=UUID(str(row["id"])),
            full_name=_full_name(row),
            is_staff=str(row.get("role") or "").upper() in _STAFF_ROLES,
        )

    def _get_profile(self, profile_id: UUID) -> dict[str, object] | None:
        response = (
            self.client.table("user_profiles")
            .select(_PROFILE_COLUMNS)
            .eq("id", str(profile_id))
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None


def _full_name(row: dict[str, object]) -> str:
    return f"{row.get('first_name', '')} {row.get('last_name', '')}".strip()


def _parse_child(row: dict[str, object]) -> Child:
    secondary = row.get("secondary_parent_id")
    return Child(
        id=UUID(str(row["id"])),
        first_name=str(row["first_name"]),
        last_name=str(row["last_name"]),
        date_of_birth=date.fromisoformat(str(row["date_of_birth"])),
        primary_parent_id=UUID(str(row["primary_parent_id"])),
        secondary_parent_id=UUID(str(secondary)) if secondary else None,
        medical_notes=row.get("medical_notes"),
        allergies=row.get("allergies"),
        special_needs=row.get("special_needs"),
        is_active=bool(row.get("is_active", True)),
    )


def _parse_service(row: dict[str, object]) -> ServiceSession:
    raw_groups = row.get("age_groups") or []
    return ServiceSession(
        id=UUID(str(row["id"])),
        name=str(row["name"]),
        service_date=date.fromisoformat(str(row["service_date"])),
        start_time=time.fromisoformat(str(row["start_time"])),
        end_time=time.fromisoformat(str(row["end_time"])),
        location=str(row.get("location") or ""),
        max_capacity=int(row["max_capacity"]),
        min_age=int(row["min_age"]),
        max_age=int(row["max_age"]),
        age_groups=frozenset(
            AgeGroup(group) for group in raw_groups if isinstance(group, str)
        ),
        is_active=bool(row.get("is_active", True)),
        check_in_opens_minutes_before=_int_or(
            row.get("check_in_starts_minutes_before"), 30
        ),
        check_in_closes_minutes_after=_int_or(
            row.get("check_in_ends_minutes_after"), 15
        ),
    )


def _int_or(value: object, default: int) -> int:
    return default if value is None else int(value)
