from pydantic import BaseModel, ConfigDict
from uuid import UUID
from datetime import datetime


class AttendanceRecordResponse(BaseModel):
    """A student marked present in one session."""
    session_id: UUID
    student_id: str
    department_id: str
    course_code: str
    recorded_at: datetime

    model_config = ConfigDict(from_attributes=True)
