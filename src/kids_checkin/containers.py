"""Dependency container wiring for the application."""

from dataclasses import dataclass
from datetime import timedelta
from zoneinfo import ZoneInfo

from supabase import create_client

from kids_checkin.adapters.supabase_attendance_ledger import SupabaseAttendanceLedger
from kids_checkin.adapters.supabase_audit_repository import SupabaseAuditRepository
from kids_checkin.adapters.supabase_checkin_repository import (
    SupabaseCheckInRequestRepository,
)
from kids_checkin.adapters.supabase_directory_repository import (
    SupabaseDirectoryRepository,
)
from kids_checkin.config import Settings
from kids_checkin.services.audit import AuditService
from kids_checkin.services.checkins import CheckInService
from kids_checkin.services.clock import utc_now
from kids_checkin.services.expiry import ExpirySweeper
from kids_checkin.services.tokens import TokenIssuer


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    checkin_service: CheckInService
    expiry_sweeper: ExpirySweeper
    audit_service: AuditService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    request_repository = SupabaseCheckInRequestRepository(supabase_client)
    audit_service = AuditService(SupabaseAuditRepository(supabase_client))
    checkin_service = CheckInService(
        repository=request_repository,
        directory=SupabaseDirectoryRepository(supabase_client),
        ledger=SupabaseAttendanceLedger(supabase_client),
        audit_service=audit_service,
        token_issuer=TokenIssuer(
            ttl=timedelta(minutes=resolved_settings.checkin_token_ttl_minutes),
            clock=utc_now,
        ),
        clock=utc_now,
        timezone=ZoneInfo(resolved_settings.service_timezone),
    )
    expiry_sweeper = ExpirySweeper(
        repository=request_repository,
        audit_service=audit_service,
        clock=utc_now,
    )
    return AppContainer(
        settings=resolved_settings,
        checkin_service=checkin_service,
        expiry_sweeper=expiry_sweeper,
        audit_service=audit_service,
    )
