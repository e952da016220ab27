from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID


class LecturerProfile(BaseModel):
    """
    The public part of a Lecturer; never carries the security key.
    """
    name: str
    course_code: str


class LecturerSession(BaseModel):
    """
    The logged-in identity cached by the storage backend.
    There is no expiry; the entry lives until the lecturer logs out.
    """
    session_id: UUID = Field(..., description="Opaque identifier handed to the client as its bearer value.")
    lecturer: LecturerProfile = Field(..., description="Who is logged in.")
    started_at: datetime = Field(..., description="When this login happened.")
