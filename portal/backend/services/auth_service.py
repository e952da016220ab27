import logging
from typing import Optional
from uuid import UUID, uuid4
from datetime import datetime, timezone

from ..db.store import AttendanceStore, StoreError
from ..models.db_models import Lecturer
from ..models.session_models import LecturerSession, LecturerProfile
from .credentials import CredentialVerifier, PlaintextVerifier
from .errors import ServiceError, TransientIOError

logger = logging.getLogger(__name__)


class AlreadyRegisteredError(ServiceError):
    """A lecturer of record already exists for this course code."""
    pass

class LecturerNotFoundError(ServiceError):
    """No lecturer is registered for this course code."""
    pass

class BadCredentialError(ServiceError):
    """The security key does not match the registered one."""
    pass

class NotAuthenticatedError(ServiceError):
    """The session id is unknown or was logged out."""
    pass


def normalize_course_code(course_code: str) -> str:
    """' mth102 ' -> 'MTH102'"""
    normalized = (course_code or "").strip().upper()
    if not normalized:
        raise ServiceError("Course code must not be empty.")
    return normalized


class AuthService:
    """
    Registers lecturers and manages their logins.

    One lecturer of record per course code: registering a code that already has a
    lecturer fails whatever key is supplied.
    """
    def __init__(self, store: AttendanceStore, verifier: Optional[CredentialVerifier] = None):
        self.store = store
        self.verifier = verifier or PlaintextVerifier()

    async def register(self, name: str, course_code: str, security_key: str) -> Lecturer:
        code = normalize_course_code(course_code)
        if not name or not name.strip():
            raise ServiceError("Lecturer name must not be empty.")
        if not security_key:
            raise ServiceError("Security key must not be empty.")

        try:
            existing = await self.store.get_lecturer(code)
            if existing:
                logger.warning(f"Registration refused: course '{code}' already has a lecturer of record.")
                raise AlreadyRegisteredError(f"Course {code} already has a registered lecturer.")

            lecturer = Lecturer(name=name.strip(), course_code=code, security_key=self.verifier.hash_key(security_key))
            # The store re-checks atomically; a concurrent registration may have won.
            if not await self.store.put_lecturer(lecturer):
                logger.warning(f"Registration refused: course '{code}' was registered concurrently.")
                raise AlreadyRegisteredError(f"Course {code} already has a registered lecturer.")
        except StoreError as e:
            logger.error(f"Storage error while registering course '{code}'.", exc_info=True)
            raise TransientIOError("Could not reach the attendance store. Please try again.") from e

        logger.info(f"Lecturer '{lecturer.name}' registered for course '{code}'.")
        return lecturer

    async def login(self, course_code: str, security_key: str) -> LecturerSession:
        code = normalize_course_code(course_code)
        logger.info(f"Login attempt for course '{code}'.")
        try:
            lecturer = await self.store.get_lecturer(code)
            if lecturer is None:
                logger.warning(f"Login failed: no lecturer registered for course '{code}'.")
                raise LecturerNotFoundError(f"No lecturer is registered for course {code}.")
            if not self.verifier.verify(security_key or "", lecturer.security_key):
                logger.warning(f"Login failed: wrong security key for course '{code}'.")
                raise BadCredentialError("Invalid course code or security key combination.")

            session = LecturerSession(
                session_id=uuid4(),
                lecturer=LecturerProfile(name=lecturer.name, course_code=lecturer.course_code),
                started_at=datetime.now(timezone.utc),
            )
            await self.store.save_login_session(session)
        except StoreError as e:
            logger.error(f"Storage error during login for course '{code}'.", exc_info=True)
            raise TransientIOError("Could not reach the attendance store. Please try again.") from e

        logger.info(f"Lecturer for course '{code}' logged in.")
        return session

    async def get_current_lecturer(self, session_id: UUID) -> LecturerSession:
        try:
            session = await self.store.get_login_session(session_id)
        except StoreError as e:
            raise TransientIOError("Could not reach the attendance store. Please try again.") from e
        if session is None:
            raise NotAuthenticatedError("Not logged in.")
        return session

    async def logout(self, session_id: UUID) -> bool:
        try:
            removed = await self.store.delete_login_session(session_id)
        except StoreError as e:
            logger.error(f"Storage error during logout of session {session_id}.", exc_info=True)
            raise TransientIOError("Could not reach the attendance store. Please try again.") from e
        logger.info(f"Login session {session_id} ended.")
        return removed
