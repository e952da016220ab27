import logging
import functools
from typing import List, Optional
from uuid import UUID
import asyncpg

from .store import AttendanceStore, StoreError
from ..models.db_models import Lecturer, Student, Session, AttendanceRecord
from ..models.session_models import LecturerSession, LecturerProfile

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS Lecturers (
    course_code TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    security_key TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL
);
CREATE TABLE IF NOT EXISTS LecturerSessions (
    session_id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    course_code TEXT NOT NULL,
    started_at TIMESTAMPTZ NOT NULL
);
CREATE TABLE IF NOT EXISTS Students (
    department_id TEXT NOT NULL,
    course_code TEXT NOT NULL,
    position INTEGER NOT NULL,
    student_id TEXT NOT NULL,
    name TEXT NOT NULL,
    matric_no TEXT NOT NULL,
    classes_attended INTEGER NOT NULL DEFAULT 0 CHECK (classes_attended >= 0),
    attendance_percentage DOUBLE PRECISION NOT NULL DEFAULT 0,
    PRIMARY KEY (department_id, course_code, student_id)
);
CREATE TABLE IF NOT EXISTS Sessions (
    session_id UUID PRIMARY KEY,
    department_id TEXT NOT NULL,
    course_code TEXT NOT NULL,
    week INTEGER NOT NULL,
    held_at TIMESTAMPTZ NOT NULL,
    present_count INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS sessions_by_course ON Sessions (department_id, course_code);
CREATE TABLE IF NOT EXISTS AttendanceRecords (
    session_id UUID NOT NULL REFERENCES Sessions (session_id),
    student_id TEXT NOT NULL,
    department_id TEXT NOT NULL,
    course_code TEXT NOT NULL,
    recorded_at TIMESTAMPTZ NOT NULL,
    PRIMARY KEY (session_id, student_id)
);
"""

_INSERT_RECORD = """
    INSERT INTO AttendanceRecords (session_id, student_id, department_id, course_code, recorded_at)
    VALUES ($1, $2, $3, $4, $5)
    ON CONFLICT (session_id, student_id) DO NOTHING;
"""

_UPSERT_STUDENT = """
    INSERT INTO Students (department_id, course_code, position, student_id, name, matric_no, classes_attended, attendance_percentage)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
    ON CONFLICT (department_id, course_code, student_id) DO UPDATE SET
        position = EXCLUDED.position,
        name = EXCLUDED.name,
        matric_no = EXCLUDED.matric_no,
        classes_attended = EXCLUDED.classes_attended,
        attendance_percentage = EXCLUDED.attendance_percentage;
"""


def _postgres_errors_as_store_errors(method):
    """Re-raises driver, server and socket failures of the wrapped call as StoreError."""
    @functools.wraps(method)
    async def wrapper(*args, **kwargs):
        try:
            return await method(*args, **kwargs)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as e:
            logger.error(f"PostgreSQL call '{method.__name__}' failed: {e}")
            raise StoreError(f"Database unavailable: {e}") from e
    return wrapper


def _rows_affected(status: str) -> int:
    """asyncpg returns a command tag such as 'INSERT 0 1' or 'DELETE 2'."""
    return int(status.split()[-1])


class AsyncPostgresClient(AttendanceStore):
    """
    Relational backend. Sessions are explicit rows; the classes-held count of a
    course is the number of its Sessions rows.
    """
    def __init__(self, pool: asyncpg.Pool, owns_pool: bool = False):
        self._pool = pool
        self._owns_pool = owns_pool

    @classmethod
    async def connect(cls, dsn: str, create_schema: bool = True) -> "AsyncPostgresClient":
        pool = await asyncpg.create_pool(dsn=dsn, min_size=1, max_size=10)
        client = cls(pool=pool, owns_pool=True)
        if create_schema:
            await client.create_schema()
        return client

    async def close(self) -> None:
        if self._owns_pool:
            await self._pool.close()

    @_postgres_errors_as_store_errors
    async def create_schema(self):
        async with self._pool.acquire() as connection:
            await connection.execute(SCHEMA)

    # ===== Lecturers =====

    @_postgres_errors_as_store_errors
    async def get_lecturer(self, course_code: str) -> Optional[Lecturer]:
        query = "SELECT course_code, name, security_key, created_at FROM Lecturers WHERE course_code = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, course_code)
            return Lecturer(**record) if record else None

    @_postgres_errors_as_store_errors
    async def put_lecturer(self, lecturer: Lecturer) -> bool:
        """The primary key on course_code enforces one lecturer per course."""
        query = """
            INSERT INTO Lecturers (course_code, name, security_key, created_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (course_code) DO NOTHING;
        """
        async with self._pool.acquire() as connection:
            status = await connection.execute(query, lecturer.course_code, lecturer.name, lecturer.security_key, lecturer.created_at)
            return _rows_affected(status) > 0

    # ===== Login sessions =====

    @_postgres_errors_as_store_errors
    async def save_login_session(self, session: LecturerSession) -> None:
        query = """
            INSERT INTO LecturerSessions (session_id, name, course_code, started_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (session_id) DO NOTHING;
        """
        async with self._pool.acquire() as connection:
            await connection.execute(query, session.session_id, session.lecturer.name, session.lecturer.course_code, session.started_at)

    @_postgres_errors_as_store_errors
    async def get_login_session(self, session_id: UUID) -> Optional[LecturerSession]:
        query = "SELECT session_id, name, course_code, started_at FROM LecturerSessions WHERE session_id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, session_id)
        if not record:
            return None
        return LecturerSession(
            session_id=record["session_id"],
            lecturer=LecturerProfile(name=record["name"], course_code=record["course_code"]),
            started_at=record["started_at"],
        )

    @_postgres_errors_as_store_errors
    async def delete_login_session(self, session_id: UUID) -> bool:
        async with self._pool.acquire() as connection:
            status = await connection.execute("DELETE FROM LecturerSessions WHERE session_id = $1;", session_id)
            return _rows_affected(status) > 0

    # ===== Rosters =====

    @_postgres_errors_as_store_errors
    async def get_students(self, department_id: str, course_code: str) -> List[Student]:
        query = """
            SELECT student_id AS id, name, matric_no, classes_attended, attendance_percentage
            FROM Students WHERE department_id = $1 AND course_code = $2
            ORDER BY position;
        """
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, department_id, course_code)
            return [Student(**record) for record in records]

    @staticmethod
    async def _upsert_students(connection: asyncpg.Connection, department_id: str, course_code: str, students: List[Student]):
        student_data = [(
            department_id, course_code, position, s.id, s.name, s.matric_no,
            s.classes_attended, s.attendance_percentage
        ) for position, s in enumerate(students, start=1)]
        await connection.executemany(_UPSERT_STUDENT, student_data)

    @_postgres_errors_as_store_errors
    async def put_students(self, department_id: str, course_code: str, students: List[Student]) -> None:
        if not students:
            return
        async with self._pool.acquire() as connection:
            async with connection.transaction():
                await self._upsert_students(connection, department_id, course_code, students)

    # ===== Session log =====

    @_postgres_errors_as_store_errors
    async def get_session_count(self, department_id: str, course_code: str) -> int:
        query = "SELECT COUNT(*) FROM Sessions WHERE department_id = $1 AND course_code = $2;"
        async with self._pool.acquire() as connection:
            return await connection.fetchval(query, department_id, course_code)

    @_postgres_errors_as_store_errors
    async def get_session(self, session_id: UUID) -> Optional[Session]:
        query = "SELECT * FROM Sessions WHERE session_id = $1;"
        async with self._pool.acquire() as connection:
            record = await connection.fetchrow(query, session_id)
            return Session(**record) if record else None

    @_postgres_errors_as_store_errors
    async def list_sessions(self, department_id: str, course_code: str) -> List[Session]:
        query = "SELECT * FROM Sessions WHERE department_id = $1 AND course_code = $2 ORDER BY week, held_at;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, department_id, course_code)
            return [Session(**record) for record in records]

    @_postgres_errors_as_store_errors
    async def append_record(self, record: AttendanceRecord) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(_INSERT_RECORD, record.session_id, record.student_id, record.department_id, record.course_code, record.recorded_at)

    @_postgres_errors_as_store_errors
    async def get_session_records(self, session_id: UUID) -> List[AttendanceRecord]:
        query = "SELECT * FROM AttendanceRecords WHERE session_id = $1 ORDER BY recorded_at, student_id;"
        async with self._pool.acquire() as connection:
            records = await connection.fetch(query, session_id)
            return [AttendanceRecord(**record) for record in records]

    @_postgres_errors_as_store_errors
    async def commit_session(self, session: Session, records: List[AttendanceRecord], students: List[Student]) -> bool:
        """Inserts the session row, its records and the updated roster in one transaction."""
        insert_session = """
            INSERT INTO Sessions (session_id, department_id, course_code, week, held_at, present_count)
            VALUES ($1, $2, $3, $4, $5, $6)
            ON CONFLICT (session_id) DO NOTHING;
        """
        record_data = [(
            rec.session_id, rec.student_id, rec.department_id, rec.course_code, rec.recorded_at
        ) for rec in records]

        async with self._pool.acquire() as connection:
            async with connection.transaction():
                status = await connection.execute(
                    insert_session, session.session_id, session.department_id, session.course_code,
                    session.week, session.held_at, session.present_count
                )
                if _rows_affected(status) == 0:
                    return False
                if record_data:
                    await connection.executemany(_INSERT_RECORD, record_data)
                await self._upsert_students(connection, session.department_id, session.course_code, students)
        return True
