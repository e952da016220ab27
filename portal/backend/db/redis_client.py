import logging
import functools
from typing import List, Optional
from uuid import UUID
import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError
from pydantic import TypeAdapter

from .store import AttendanceStore, StoreError
from ..models.db_models import Lecturer, Student, Session, AttendanceRecord
from ..models.session_models import LecturerSession

logger = logging.getLogger(__name__)

_roster_adapter = TypeAdapter(List[Student])


def _redis_errors_as_store_errors(method):
    """Re-raises any redis or socket failure of the wrapped call as StoreError."""
    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except (RedisError, OSError) as e:
            logger.error(f"Redis call '{method.__name__}' failed: {e}")
            raise StoreError(f"Key-value store unavailable: {e}") from e
    return wrapper


class RedisClient(AttendanceStore):
    """
    Key-value backend. Every entity is a JSON string under a namespaced key:

        lecturers:<COURSE>                 one lecturer per course code
        login_sessions:<uuid>              cached logged-in identity
        roster:<dept>:<COURSE>             the whole roster as one JSON array
        sessions:<dept>:<COURSE>           list of session ids, oldest first
        session:<uuid>                     one session row
        records:<uuid>                     list of records for one session
    """

    def __init__(self, pool: redis.ConnectionPool, owns_pool: bool = False):
        self._redis = redis.Redis(connection_pool=pool, decode_responses=True)
        self._pool = pool
        self._owns_pool = owns_pool

    @classmethod
    def from_url(cls, url: str) -> "RedisClient":
        pool = redis.ConnectionPool.from_url(url, decode_responses=True)
        return cls(pool=pool, owns_pool=True)

    async def close(self) -> None:
        await self._redis.aclose()
        if self._owns_pool:
            await self._pool.disconnect()

    # --- Key helpers ---

    @staticmethod
    def _lecturer_key(course_code: str) -> str:
        return f"lecturers:{course_code}"

    @staticmethod
    def _login_key(session_id: UUID) -> str:
        return f"login_sessions:{session_id}"

    @staticmethod
    def _roster_key(department_id: str, course_code: str) -> str:
        return f"roster:{department_id}:{course_code}"

    @staticmethod
    def _session_log_key(department_id: str, course_code: str) -> str:
        return f"sessions:{department_id}:{course_code}"

    @staticmethod
    def _session_key(session_id: UUID) -> str:
        return f"session:{session_id}"

    @staticmethod
    def _records_key(session_id: UUID) -> str:
        return f"records:{session_id}"

    # ===== Lecturers =====

    @_redis_errors_as_store_errors
    async def get_lecturer(self, course_code: str) -> Optional[Lecturer]:
        lecturer_json = await self._redis.get(self._lecturer_key(course_code))
        return Lecturer.model_validate_json(lecturer_json) if lecturer_json else None

    @_redis_errors_as_store_errors
    async def put_lecturer(self, lecturer: Lecturer) -> bool:
        # SET NX keeps the first lecturer of record for a course.
        created = await self._redis.set(self._lecturer_key(lecturer.course_code), lecturer.model_dump_json(), nx=True)
        return bool(created)

    # ===== Login sessions =====

    @_redis_errors_as_store_errors
    async def save_login_session(self, session: LecturerSession) -> None:
        await self._redis.set(self._login_key(session.session_id), session.model_dump_json())

    @_redis_errors_as_store_errors
    async def get_login_session(self, session_id: UUID) -> Optional[LecturerSession]:
        session_json = await self._redis.get(self._login_key(session_id))
        return LecturerSession.model_validate_json(session_json) if session_json else None

    @_redis_errors_as_store_errors
    async def delete_login_session(self, session_id: UUID) -> bool:
        return bool(await self._redis.delete(self._login_key(session_id)))

    # ===== Rosters =====

    @_redis_errors_as_store_errors
    async def get_students(self, department_id: str, course_code: str) -> List[Student]:
        roster_json = await self._redis.get(self._roster_key(department_id, course_code))
        return _roster_adapter.validate_json(roster_json) if roster_json else []

    @_redis_errors_as_store_errors
    async def put_students(self, department_id: str, course_code: str, students: List[Student]) -> None:
        await self._redis.set(self._roster_key(department_id, course_code), _roster_adapter.dump_json(students).decode())

    # ===== Session log =====

    @_redis_errors_as_store_errors
    async def get_session_count(self, department_id: str, course_code: str) -> int:
        return await self._redis.llen(self._session_log_key(department_id, course_code))

    @_redis_errors_as_store_errors
    async def get_session(self, session_id: UUID) -> Optional[Session]:
        session_json = await self._redis.get(self._session_key(session_id))
        return Session.model_validate_json(session_json) if session_json else None

    @_redis_errors_as_store_errors
    async def list_sessions(self, department_id: str, course_code: str) -> List[Session]:
        session_ids = await self._redis.lrange(self._session_log_key(department_id, course_code), 0, -1)
        if not session_ids:
            return []
        session_jsons = await self._redis.mget([self._session_key(UUID(sid)) for sid in session_ids])
        return [Session.model_validate_json(s) for s in session_jsons if s]

    @_redis_errors_as_store_errors
    async def append_record(self, record: AttendanceRecord) -> None:
        await self._redis.rpush(self._records_key(record.session_id), record.model_dump_json())

    @_redis_errors_as_store_errors
    async def get_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        record_jsons = await self._redis.lrange(self._records_key(session_id), 0, -1)
        return [AttendanceRecord.model_validate_json(r) for r in record_jsons]

    @_redis_errors_as_store_errors
    async def commit_session(self, session: Session, records: List[AttendanceRecord], students: List[Student]) -> bool:
        """
        Writes the session, its records and the roster in one MULTI/EXEC block.
        The session key is WATCHed so a concurrent commit of the same id aborts this one.
        """
        session_key = self._session_key(session.session_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(session_key)
                if await pipe.exists(session_key):
                    return False
                pipe.multi()
                pipe.set(session_key, session.model_dump_json())
                pipe.rpush(self._session_log_key(session.department_id, session.course_code), str(session.session_id))
                if records:
                    pipe.rpush(self._records_key(session.session_id), *[r.model_dump_json() for r in records])
                pipe.set(self._roster_key(session.department_id, session.course_code), _roster_adapter.dump_json(students).decode())
                await pipe.execute()
            except WatchError:
                logger.warning(f"Session {session.session_id} was committed concurrently; skipping duplicate write.")
                return False
        return True
