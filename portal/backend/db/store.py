from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from ..models.db_models import Lecturer, Student, Session, AttendanceRecord
from ..models.session_models import LecturerSession


class ConfigurationMissingError(Exception):
    """The selected storage backend is unknown or lacks the settings it needs."""
    pass


class StoreError(Exception):
    """A storage call failed (network, server or driver error). Safe to retry."""
    pass


class AttendanceStore(ABC):
    """
    Capability interface every persistence backend implements.

    Rosters, sessions and records are namespaced by (department_id, course_code).
    Backends translate their driver errors into StoreError.
    """

    # ===== Lecturers =====

    @abstractmethod
    async def get_lecturer(self, course_code: str) -> Optional[Lecturer]:
        """Returns the lecturer of record for a course code, if any."""

    @abstractmethod
    async def put_lecturer(self, lecturer: Lecturer) -> bool:
        """Inserts a lecturer. Returns False, changing nothing, if the course already has one."""

    # ===== Login sessions =====

    @abstractmethod
    async def save_login_session(self, session: LecturerSession) -> None:
        ...

    @abstractmethod
    async def get_login_session(self, session_id: UUID) -> Optional[LecturerSession]:
        ...

    @abstractmethod
    async def delete_login_session(self, session_id: UUID) -> bool:
        ...

    # ===== Rosters =====

    @abstractmethod
    async def get_students(self, department_id: str, course_code: str) -> List[Student]:
        """Returns the roster in order, or an empty list if none was stored yet."""

    @abstractmethod
    async def put_students(self, department_id: str, course_code: str, students: List[Student]) -> None:
        ...

    # ===== Session log =====

    @abstractmethod
    async def get_session_count(self, department_id: str, course_code: str) -> int:
        """Number of classes held for the course."""

    @abstractmethod
    async def get_session(self, session_id: UUID) -> Optional[Session]:
        ...

    @abstractmethod
    async def list_sessions(self, department_id: str, course_code: str) -> List[Session]:
        """Sessions of a course, oldest first."""

    @abstractmethod
    async def append_record(self, record: AttendanceRecord) -> None:
        ...

    @abstractmethod
    async def get_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        ...

    @abstractmethod
    async def commit_session(self, session: Session, records: List[AttendanceRecord], students: List[Student]) -> bool:
        """
        Writes a session row, its records and the updated roster as one unit.

        Either all of it becomes visible or none of it does. Returns False without
        writing anything if a session with the same id was already committed.
        """

    async def close(self) -> None:
        """Releases connections held by the backend."""
        return None
