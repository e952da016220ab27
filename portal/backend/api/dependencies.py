#portal/backend/api/dependencies.py
from fastapi import Request, Depends, HTTPException, status

from ..db.store import AttendanceStore
from ..services.attendance_engine import SheetRegistry
from ..services.attendance_service import AttendanceService
from ..services.auth_service import AuthService


def get_store(request: Request) -> AttendanceStore:
    """
    Returns the storage backend created at startup.

    When the backend could not be configured every route that needs it answers
    503 with the reason, while the catalog stays browsable.
    """
    store = getattr(request.app.state, "store", None)
    if store is None:
        reason = getattr(request.app.state, "store_error", None) or "Storage backend is not configured."
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=reason)
    return store


def get_registry(request: Request) -> SheetRegistry:
    return request.app.state.registry


def get_auth_service(request: Request, store: AttendanceStore = Depends(get_store)) -> AuthService:
    """Builds a fresh AuthService for each request on top of the shared store."""
    return AuthService(store=store, verifier=request.app.state.verifier)


def get_attendance_service(
    request: Request,
    store: AttendanceStore = Depends(get_store),
    registry: SheetRegistry = Depends(get_registry),
) -> AttendanceService:
    """
    Builds a fresh AttendanceService for each request.

    The store and the sheet registry are shared across requests, so marks and the
    per-course save lock survive between calls.
    """
    settings = request.app.state.settings
    return AttendanceService(
        store=store,
        registry=registry,
        institution=settings.ROSTER_INSTITUTION,
        roster_year=settings.ROSTER_YEAR,
        roster_size=settings.ROSTER_SIZE,
    )
