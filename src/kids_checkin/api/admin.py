"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from kids_checkin.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/sweep", dependencies=[Depends(require_admin)])
async def sweep_expired(request: Request) -> dict[str, object]:
    """Expire overdue pending requests now; meant for an external cron."""
    container: AppContainer = request.app.state.container
    expired = container.expiry_sweeper.sweep()
    return {"expired": len(expired), "request_ids": [str(r.id) for r in expired]}


@router.get("/overdue", dependencies=[Depends(require_admin)])
async def list_overdue(request: Request) -> dict[str, object]:
    """Return pending requests that the next sweep would expire."""
    container: AppContainer = request.app.state.container
    overdue = container.expiry_sweeper.overdue()
    return {
        "requests": [
            {
                "id": str(item.id),
                "child_id": str(item.child_id),
                "service_id": str(item.service_id),
                "expires_at": item.expires_at.isoformat(),
            }
            for item in overdue
        ]
    }


@router.get("/requests/{request_id}/audit", dependencies=[Depends(require_admin)])
async def request_audit(
    request_id: UUID, request: Request, limit: int = 20
) -> dict[str, object]:
    """Return the recorded transitions of one check-in request."""
    container: AppContainer = request.app.state.container
    return {"events": container.audit_service.history(request_id, limit)}
