"""Audit trail for check-in request transitions."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from kids_checkin.domain.checkins import CheckInRequest, CheckInStatus


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(  # noqa: PLR0913
        self,
        actor_id: UUID | None,
        entity_type: str,
        entity_id: UUID,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Create an audit event row."""

    def list_events(self, entity_id: UUID, limit: int) -> list[dict[str, object]]:
        """Return the newest audit events for an entity."""


@dataclass
class AuditService:
    """Records who moved a check-in request and from which state."""

    repository: AuditRepository

    def record_transition(
        self,
        actor_id: UUID | None,
        request: CheckInRequest,
        event_type: str,
        before: CheckInStatus | None,
    ) -> None:
        """Persist one status change of ``request``."""
        self.repository.create_event(
            actor_id=actor_id,
            entity_type="check_in_request",
            entity_id=request.id,
            event_type=event_type,
            before={"status": before.value} if before else None,
            after=_snapshot(request),
        )

    def history(self, request_id: UUID, limit: int = 20) -> list[dict[str, object]]:
        """Return recorded transitions for a request, newest first."""
        return self.repository.list_events(request_id, limit)


def _snapshot(request: CheckInRequest) -> dict[str, object]:
    return {
        "status": request.status.value,
        "child_id": str(request.child_id),
        "service_id": str(request.service_id),
        "processed_by": str(request.processed_by) if request.processed_by else None,
        "rejection_reason": request.rejection_reason,
    }
