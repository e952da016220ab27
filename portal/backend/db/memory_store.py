import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from .store import AttendanceStore
from ..models.db_models import Lecturer, Student, Session, AttendanceRecord
from ..models.session_models import LecturerSession

logger = logging.getLogger(__name__)


class MemoryStore(AttendanceStore):
    """
    Process-local backend; the offline variant of the portal and the one the
    tests run against. No method ever suspends, so a commit can never be
    observed half-done on the event loop.
    """

    def __init__(self):
        self._lecturers: Dict[str, Lecturer] = {}
        self._login_sessions: Dict[UUID, LecturerSession] = {}
        self._rosters: Dict[Tuple[str, str], List[Student]] = {}
        self._sessions: Dict[UUID, Session] = {}
        self._session_log: Dict[Tuple[str, str], List[UUID]] = {}
        self._records: Dict[UUID, List[AttendanceRecord]] = {}

    # ===== Lecturers =====

    async def get_lecturer(self, course_code: str) -> Optional[Lecturer]:
        lecturer = self._lecturers.get(course_code)
        return lecturer.model_copy() if lecturer else None

    async def put_lecturer(self, lecturer: Lecturer) -> bool:
        if lecturer.course_code in self._lecturers:
            return False
        self._lecturers[lecturer.course_code] = lecturer.model_copy()
        return True

    # ===== Login sessions =====

    async def save_login_session(self, session: LecturerSession) -> None:
        self._login_sessions[session.session_id] = session.model_copy(deep=True)

    async def get_login_session(self, session_id: UUID) -> Optional[LecturerSession]:
        session = self._login_sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def delete_login_session(self, session_id: UUID) -> bool:
        return self._login_sessions.pop(session_id, None) is not None

    # ===== Rosters =====

    async def get_students(self, department_id: str, course_code: str) -> List[Student]:
        return [s.model_copy() for s in self._rosters.get((department_id, course_code), [])]

    async def put_students(self, department_id: str, course_code: str, students: List[Student]) -> None:
        self._rosters[(department_id, course_code)] = [s.model_copy() for s in students]

    # ===== Session log =====

    async def get_session_count(self, department_id: str, course_code: str) -> int:
        return len(self._session_log.get((department_id, course_code), []))

    async def get_session(self, session_id: UUID) -> Optional[Session]:
        session = self._sessions.get(session_id)
        return session.model_copy() if session else None

    async def list_sessions(self, department_id: str, course_code: str) -> List[Session]:
        return [self._sessions[sid].model_copy() for sid in self._session_log.get((department_id, course_code), [])]

    async def append_record(self, record: AttendanceRecord) -> None:
        self._records.setdefault(record.session_id, []).append(record.model_copy())

    async def get_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        return [r.model_copy() for r in self._records.get(session_id, [])]

    async def commit_session(self, session: Session, records: List[AttendanceRecord], students: List[Student]) -> bool:
        if session.session_id in self._sessions:
            return False
        key = (session.department_id, session.course_code)
        self._sessions[session.session_id] = session.model_copy()
        self._session_log.setdefault(key, []).append(session.session_id)
        for record in records:
            await self.append_record(record)
        await self.put_students(session.department_id, session.course_code, students)
        logger.debug(f"Session {session.session_id} committed in memory with {len(records)} records.")
        return True
