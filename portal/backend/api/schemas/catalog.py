from pydantic import BaseModel, ConfigDict
from typing import List


class CollegeResponse(BaseModel):
    id: str
    name: str
    department_count: int


class DepartmentResponse(BaseModel):
    id: str
    name: str
    levels: List[int]

    model_config = ConfigDict(from_attributes=True)


class CourseResponse(BaseModel):
    id: str
    code: str
    title: str
    semester: int

    model_config = ConfigDict(from_attributes=True)
