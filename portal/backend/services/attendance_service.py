import logging
from typing import Iterable, List, Optional
from uuid import UUID, uuid4
from datetime import datetime, timezone
from pydantic import BaseModel

from ..db.store import AttendanceStore, StoreError
from ..models.db_models import Student, Session, AttendanceRecord
from ..modules import catalog
from ..modules.roster import generate_students, DEFAULT_ROSTER_SIZE
from .attendance_engine import apply_session, MarkSheet, SheetRegistry
from .errors import ServiceError, TransientIOError

logger = logging.getLogger(__name__)


class CourseNotFoundError(ServiceError):
    """The department does not exist or does not offer the course."""
    pass

class UnknownStudentError(ServiceError):
    """A student id is not on the course roster."""
    pass

class SessionNotFoundError(ServiceError):
    pass

class SessionConflictError(ServiceError):
    """The session id was already used for a different course."""
    pass


# --- Result model returned to the API layer ---
class SheetState(BaseModel):
    """Roster and classes-held count of one course after a read or a save."""
    department_id: str
    course_code: str
    classes_held: int
    students: List[Student]
    saved: bool = False
    duplicate: bool = False
    session: Optional[Session] = None


class AttendanceService:
    """
    Service layer for the per-course attendance sheet.

    The engine computes the next roster; this class reads the current state,
    generates a placeholder roster on first use and hands the result to the
    store as one commit.
    """
    def __init__(
        self,
        store: AttendanceStore,
        registry: Optional[SheetRegistry] = None,
        institution: str = "LASU",
        roster_year: int = 2023,
        roster_size: int = DEFAULT_ROSTER_SIZE,
    ):
        self.store = store
        self.registry = registry if registry is not None else SheetRegistry()
        self.institution = institution
        self.roster_year = roster_year
        self.roster_size = roster_size

    @staticmethod
    def resolve_course(department_id: str, course_code: str) -> str:
        """Checks the pair against the catalog and returns the normalized course code."""
        try:
            return catalog.department_offers(department_id, course_code).code
        except catalog.CatalogLookupError as e:
            raise CourseNotFoundError(str(e)) from e

    @staticmethod
    def _check_same_course(existing: Session, department_id: str, course_code: str):
        if (existing.department_id, existing.course_code) != (department_id, course_code):
            logger.warning(
                f"Session id {existing.session_id} belongs to {existing.department_id}/{existing.course_code}, "
                f"not {department_id}/{course_code}; save refused."
            )
            raise SessionConflictError("This session id was already used for another course. Nothing was recorded.")

    async def get_roster(self, department_id: str, course_code: str) -> List[Student]:
        """Returns the stored roster, generating and storing a placeholder one if none exists."""
        try:
            students = await self.store.get_students(department_id, course_code)
            if students:
                return students

            students = generate_students(
                department_id, size=self.roster_size, institution=self.institution, year=self.roster_year
            )
            await self.store.put_students(department_id, course_code, students)
        except StoreError as e:
            logger.error(f"Storage error while loading roster {department_id}/{course_code}.", exc_info=True)
            raise TransientIOError("Could not load the roster. Please try again.") from e

        logger.info(f"Generated placeholder roster of {len(students)} students for {department_id}/{course_code}.")
        return students

    async def get_sheet(self, department_id: str, course_code: str) -> SheetState:
        code = self.resolve_course(department_id, course_code)
        students = await self.get_roster(department_id, code)
        try:
            classes_held = await self.store.get_session_count(department_id, code)
        except StoreError as e:
            raise TransientIOError("Could not load the session count. Please try again.") from e
        return SheetState(department_id=department_id, course_code=code, classes_held=classes_held, students=students)

    async def ensure_on_roster(self, department_id: str, course_code: str, student_id: str):
        students = await self.get_roster(department_id, course_code)
        if student_id not in {s.id for s in students}:
            raise UnknownStudentError(f"Student '{student_id}' is not on this roster.")

    async def toggle_mark(self, sheet: MarkSheet, student_id: str) -> bool:
        """Flips one student's mark on the working sheet; storage is never written."""
        await self.ensure_on_roster(sheet.department_id, sheet.course_code, student_id)
        return sheet.toggle(student_id)

    async def save_attendance(
        self,
        department_id: str,
        course_code: str,
        marked_ids: Iterable[str],
        session_id: Optional[UUID] = None,
    ) -> SheetState:
        """
        Records one class for the course with the given students present.

        An empty mark set is a no-op: nothing is written and the classes-held
        count stays where it was. A ``session_id`` that was already committed is
        also a no-op, so a caller that lost the response to a save can resend it
        with the same id without counting the class twice.

        If the commit fails, nothing was persisted and TransientIOError is raised.
        """
        code = self.resolve_course(department_id, course_code)
        marked = set(marked_ids)

        if not marked:
            logger.info(f"Save for {department_id}/{code} ignored; nobody was marked present.")
            return await self.get_sheet(department_id, code)

        self.registry.begin_save(department_id, code)
        try:
            if session_id is not None:
                try:
                    existing = await self.store.get_session(session_id)
                except StoreError as e:
                    raise TransientIOError("Could not reach the attendance store. Please try again.") from e
                if existing is not None:
                    self._check_same_course(existing, department_id, code)
                    logger.info(f"Session {session_id} already committed; returning current state.")
                    state = await self.get_sheet(department_id, code)
                    return state.model_copy(update={"duplicate": True, "session": existing})

            state = await self.get_sheet(department_id, code)
            unknown = marked - {s.id for s in state.students}
            if unknown:
                raise UnknownStudentError(f"Unknown student ids: {', '.join(sorted(unknown))}.")

            outcome = apply_session(state.students, state.classes_held, marked)
            now = datetime.now(timezone.utc)
            session = Session(
                session_id=session_id or uuid4(),
                department_id=department_id,
                course_code=code,
                week=outcome.classes_held,
                held_at=now,
                present_count=len(outcome.present_ids),
            )
            records = [
                AttendanceRecord(session_id=session.session_id, student_id=sid, department_id=department_id, course_code=code, recorded_at=now)
                for sid in outcome.present_ids
            ]

            try:
                committed = await self.store.commit_session(session, records, outcome.students)
            except StoreError as e:
                logger.error(f"Commit of session {session.session_id} for {department_id}/{code} failed.", exc_info=True)
                raise TransientIOError("Attendance could not be saved. Nothing was recorded; please try again.") from e

            if not committed:
                try:
                    existing = await self.store.get_session(session.session_id)
                except StoreError as e:
                    raise TransientIOError("Could not reach the attendance store. Please try again.") from e
                if existing is not None:
                    self._check_same_course(existing, department_id, code)
                    session = existing
                logger.info(f"Session {session.session_id} was committed by another request.")
                state = await self.get_sheet(department_id, code)
                return state.model_copy(update={"duplicate": True, "session": session})

            logger.info(
                f"Session {session.session_id} (week {session.week}) saved for {department_id}/{code}: "
                f"{session.present_count} present."
            )
            return SheetState(
                department_id=department_id,
                course_code=code,
                classes_held=outcome.classes_held,
                students=outcome.students,
                saved=True,
                session=session,
            )
        finally:
            self.registry.end_save(department_id, code)

    async def save_sheet(self, sheet: MarkSheet, session_id: Optional[UUID] = None) -> SheetState:
        """
        Saves the marks of a working sheet. Once the save went through only the
        saved ids are unmarked; marks toggled while it was in flight stay.
        """
        saved_ids = set(sheet.marked)
        state = await self.save_attendance(sheet.department_id, sheet.course_code, saved_ids, session_id)
        if state.saved or state.duplicate:
            sheet.marked -= saved_ids
        return state

    async def list_sessions(self, department_id: str, course_code: str) -> List[Session]:
        code = self.resolve_course(department_id, course_code)
        try:
            return await self.store.list_sessions(department_id, code)
        except StoreError as e:
            raise TransientIOError("Could not load the session history. Please try again.") from e

    async def get_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        try:
            session = await self.store.get_session(session_id)
            if session is None:
                raise SessionNotFoundError(f"Session {session_id} does not exist.")
            return await self.store.get_session_records(session_id)
        except StoreError as e:
            raise TransientIOError("Could not load the session records. Please try again.") from e
