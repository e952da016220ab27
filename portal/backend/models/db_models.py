# portal/backend/models/db_models.py

from pydantic import BaseModel, Field
from datetime import datetime, timezone
from uuid import UUID


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Lecturer(BaseModel):
    """
    A registered lecturer, mapping to the 'Lecturers' table.
    """
    name: str
    course_code: str = Field(..., description="Upper-cased course code; one lecturer of record per course.")
    security_key: str = Field(..., description="Key as produced by the configured credential verifier.")
    created_at: datetime = Field(default_factory=_utcnow)


class Student(BaseModel):
    """
    One row of a course roster, mapping to the 'Students' table.
    Scoped to a (department_id, course_code) pair.
    """
    id: str = Field(..., description="Stable identifier, e.g. 'student-csc-7'.")
    name: str
    matric_no: str
    classes_attended: int = Field(0, ge=0)
    attendance_percentage: float = Field(0.0, ge=0.0, le=100.0)


class Session(BaseModel):
    """
    One class held for a course, mapping to the 'Sessions' table.
    The number of sessions for a course is its classes-held count.
    """
    session_id: UUID = Field(..., description="Durable identifier; committing the same id twice is a no-op.")
    department_id: str
    course_code: str
    week: int = Field(..., ge=1, description="1-based ordinal of this session within the course.")
    held_at: datetime = Field(default_factory=_utcnow)
    present_count: int = Field(0, ge=0)


class AttendanceRecord(BaseModel):
    """
    A student marked present in one session, mapping to the 'AttendanceRecords' table.
    Append-only.
    """
    session_id: UUID = Field(..., description="FK linking to the session")
    student_id: str
    department_id: str
    course_code: str
    recorded_at: datetime = Field(default_factory=_utcnow)
