"""Background expiry of stale check-in requests."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from kids_checkin.domain.checkins import CheckInRequest, CheckInStatus
from kids_checkin.services.audit import AuditService
from kids_checkin.services.checkins import CheckInRequestRepository
from kids_checkin.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass
class ExpirySweeper:
    """Moves PENDING requests past their expiry to EXPIRED."""

    repository: CheckInRequestRepository
    audit_service: AuditService
    clock: Clock = utc_now

    def overdue(self, now: datetime | None = None) -> list[CheckInRequest]:
        """Return the requests the next sweep would expire."""
        return self.repository.list_by_status_expiring_before(
            CheckInStatus.PENDING, now or self.clock()
        )

    def sweep(self, now: datetime | None = None) -> list[CheckInRequest]:
        """Expire every overdue pending request in a single batch write."""
        cutoff = now or self.clock()
        expired = self.repository.expire_pending_before(cutoff)
        if not expired:
            return []
        for request in expired:
            self.audit_service.record_transition(
                None, request, "expired", CheckInStatus.PENDING
            )
        logger.info(
            "Expired %d check-in requests",
            len(expired),
            extra={"cutoff": cutoff.isoformat()},
        )
        return expired

    async def run(self, interval_seconds: float, stop: asyncio.Event) -> None:
        """Sweep every ``interval_seconds`` until ``stop`` is set."""
        while not stop.is_set():
            try:
                self.sweep()
            except Exception:
                logger.exception("Expiry sweep failed")
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval_seconds)
            except TimeoutError:
                continue
