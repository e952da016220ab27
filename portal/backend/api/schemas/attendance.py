from pydantic import BaseModel, Field, ConfigDict
from uuid import UUID
from datetime import datetime
from typing import List, Optional


class StudentResponse(BaseModel):
    id: str
    name: str
    matric_no: str
    classes_attended: int
    attendance_percentage: float

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    """One class held for a course."""
    session_id: UUID
    department_id: str
    course_code: str
    week: int
    held_at: datetime
    present_count: int

    model_config = ConfigDict(from_attributes=True)


class AttendanceSheetResponse(BaseModel):
    """Everything the attendance sheet view renders."""
    department_id: str
    course_code: str
    course_title: str
    classes_held: int
    students: List[StudentResponse]
    marked_ids: List[str] = Field(default_factory=list, description="Students currently marked present on this sheet; not yet saved.")
    saving: bool = Field(False, description="True while a save for this course is in flight.")


class MarkToggleResponse(BaseModel):
    student_id: str
    marked: bool
    marked_ids: List[str]


class SaveAttendanceRequest(BaseModel):
    """Request model for recording one class."""
    session_id: Optional[UUID] = Field(
        None,
        description="Client-generated id for this save. Resending the same id never counts the class twice.",
    )
    student_ids: Optional[List[str]] = Field(
        None,
        description="Students present. When omitted, the marks toggled on this sheet are saved.",
    )


class SaveAttendanceResponse(AttendanceSheetResponse):
    saved: bool = Field(description="False when nothing was recorded (no marks, or a repeated session id).")
    duplicate: bool = False
    session: Optional[SessionResponse] = None
