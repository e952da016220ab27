# portal/backend/api/schemas/lecturer.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Lecturer's display name, e.g. 'Dr. Samuel Kola'.")
    course_code: str = Field(..., min_length=1, description="Course the lecturer is the lecturer of record for, e.g. 'MTH102'.")
    security_key: str = Field(..., min_length=1)

    @field_validator("course_code")
    def normalize_course_code(cls, v):
        v = v.strip().upper()
        if not v:
            raise ValueError("Course code must not be blank.")
        return v


class LoginRequest(BaseModel):
    course_code: str = Field(..., min_length=1)
    security_key: str


class SessionToken(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LecturerResponse(BaseModel):
    name: str
    course_code: str

    model_config = ConfigDict(from_attributes=True)


class RegisterResponse(LecturerResponse):
    created_at: datetime


class LoginResponse(BaseModel):
    """Login result: the bearer value to send on later requests and who it belongs to."""
    session: SessionToken
    lecturer: LecturerResponse
