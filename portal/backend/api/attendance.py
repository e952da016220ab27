from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from typing import List
from uuid import UUID

from ..models.session_models import LecturerSession
from ..modules import catalog
from ..services.attendance_engine import MarkSheet, SheetRegistry, SaveInProgressError
from ..services.attendance_service import (
    AttendanceService,
    SheetState,
    CourseNotFoundError,
    UnknownStudentError,
    SessionNotFoundError,
    SessionConflictError,
)
from ..services.errors import ServiceError, TransientIOError
from .schemas.attendance import (
    AttendanceSheetResponse,
    MarkToggleResponse,
    SaveAttendanceRequest,
    SaveAttendanceResponse,
    SessionResponse,
)
from .schemas.session import AttendanceRecordResponse
from .auth import get_current_session
from .dependencies import get_attendance_service, get_registry
from .utilities.limiter import limiter


router = APIRouter(prefix="/attendance", tags=["Attendance Sheet"])

# --- Helpers ---

def _raise_http(e: Exception):
    """Maps service errors to HTTP responses; the message is shown to the lecturer as-is."""
    if isinstance(e, (CourseNotFoundError, SessionNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (SaveInProgressError, SessionConflictError)):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, TransientIOError):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _open_sheet(registry: SheetRegistry, current: LecturerSession, dept_id: str, course_code: str) -> MarkSheet:
    code = AttendanceService.resolve_course(dept_id, course_code)
    return registry.get_sheet(str(current.session_id), dept_id, code)


def _release_sheet(registry: SheetRegistry, current: LecturerSession, sheet: MarkSheet):
    registry.release_sheet(str(current.session_id), sheet.department_id, sheet.course_code)


def _sheet_response(state: SheetState, sheet: MarkSheet, registry: SheetRegistry) -> dict:
    return dict(
        department_id=state.department_id,
        course_code=state.course_code,
        course_title=catalog.department_offers(state.department_id, state.course_code).title,
        classes_held=state.classes_held,
        students=[s.model_dump() for s in state.students],
        marked_ids=sheet.sorted_marks(),
        saving=registry.is_saving(state.department_id, state.course_code),
    )

# === Sheet ===
# Every route that opens a sheet releases it on the way out; the registry only
# keeps sheets that still hold marks.

@router.get("/{dept_id}/{course_code}", response_model=AttendanceSheetResponse, summary="Open the attendance sheet of a course")
@limiter.limit("120/minute")
async def get_sheet(request: Request, dept_id: str, course_code: str, current: LecturerSession = Depends(get_current_session), service: AttendanceService = Depends(get_attendance_service), registry: SheetRegistry = Depends(get_registry)):
    try:
        sheet = _open_sheet(registry, current, dept_id, course_code)
    except ServiceError as e:
        _raise_http(e)
    try:
        state = await service.get_sheet(dept_id, sheet.course_code)
    except ServiceError as e:
        _raise_http(e)
    finally:
        _release_sheet(registry, current, sheet)
    return AttendanceSheetResponse(**_sheet_response(state, sheet, registry))


@router.post("/{dept_id}/{course_code}/marks/{student_id}", response_model=MarkToggleResponse, summary="Mark or unmark a student as present")
@limiter.limit("600/minute")
async def toggle_mark(request: Request, dept_id: str, course_code: str, student_id: str, current: LecturerSession = Depends(get_current_session), service: AttendanceService = Depends(get_attendance_service), registry: SheetRegistry = Depends(get_registry)):
    try:
        code = AttendanceService.resolve_course(dept_id, course_code)
        await service.ensure_on_roster(dept_id, code, student_id)
    except UnknownStudentError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ServiceError as e:
        _raise_http(e)
    # No await between opening and toggling, so a concurrent release cannot orphan the sheet.
    sheet = registry.get_sheet(str(current.session_id), dept_id, code)
    marked = sheet.toggle(student_id)
    marked_ids = sheet.sorted_marks()
    _release_sheet(registry, current, sheet)
    return MarkToggleResponse(student_id=student_id, marked=marked, marked_ids=marked_ids)


@router.delete("/{dept_id}/{course_code}/marks", status_code=status.HTTP_204_NO_CONTENT, summary="Clear every mark on the sheet")
async def clear_marks(dept_id: str, course_code: str, current: LecturerSession = Depends(get_current_session), registry: SheetRegistry = Depends(get_registry)):
    try:
        sheet = _open_sheet(registry, current, dept_id, course_code)
    except ServiceError as e:
        _raise_http(e)
    sheet.clear()
    _release_sheet(registry, current, sheet)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{dept_id}/{course_code}/save", response_model=SaveAttendanceResponse, summary="Record one class with the marked students present")
@limiter.limit("30/minute")
async def save_attendance(request: Request, dept_id: str, course_code: str, save_request: SaveAttendanceRequest, current: LecturerSession = Depends(get_current_session), service: AttendanceService = Depends(get_attendance_service), registry: SheetRegistry = Depends(get_registry)):
    try:
        sheet = _open_sheet(registry, current, dept_id, course_code)
    except ServiceError as e:
        _raise_http(e)
    try:
        if save_request.student_ids is None:
            state = await service.save_sheet(sheet, save_request.session_id)
        else:
            state = await service.save_attendance(dept_id, sheet.course_code, save_request.student_ids, save_request.session_id)
            if state.saved or state.duplicate:
                sheet.marked -= set(save_request.student_ids)
    except (ServiceError, SaveInProgressError) as e:
        _raise_http(e)
    finally:
        _release_sheet(registry, current, sheet)

    return SaveAttendanceResponse(
        **_sheet_response(state, sheet, registry),
        saved=state.saved,
        duplicate=state.duplicate,
        session=state.session.model_dump() if state.session else None,
    )

# === History ===

@router.get("/{dept_id}/{course_code}/sessions", response_model=List[SessionResponse], summary="List the classes held for a course")
@limiter.limit("60/minute")
async def list_sessions(request: Request, dept_id: str, course_code: str, current: LecturerSession = Depends(get_current_session), service: AttendanceService = Depends(get_attendance_service)):
    try:
        return await service.list_sessions(dept_id, course_code)
    except ServiceError as e:
        _raise_http(e)


@router.get("/sessions/{session_id}/records", response_model=List[AttendanceRecordResponse], summary="List who was present in one class")
@limiter.limit("60/minute")
async def get_session_records(request: Request, session_id: UUID, current: LecturerSession = Depends(get_current_session), service: AttendanceService = Depends(get_attendance_service)):
    try:
        return await service.get_session_records(session_id)
    except ServiceError as e:
        _raise_http(e)
