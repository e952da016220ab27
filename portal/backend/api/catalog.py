from fastapi import APIRouter, HTTPException, status
from typing import List

from .schemas.catalog import CollegeResponse, DepartmentResponse, CourseResponse
from ..modules import catalog

# Static, read-only data; stays available even when the storage backend is down.
router = APIRouter(prefix="/catalog", tags=["Catalog"])


def _not_found(e: catalog.CatalogLookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/colleges", response_model=List[CollegeResponse], summary="List colleges")
async def list_colleges():
    return [
        CollegeResponse(id=college.id, name=college.name, department_count=len(college.departments))
        for college in catalog.list_colleges()
    ]


@router.get("/colleges/{college_id}/departments", response_model=List[DepartmentResponse], summary="List the departments of a college")
async def list_departments(college_id: str):
    try:
        return list(catalog.get_college(college_id).departments)
    except catalog.CatalogLookupError as e:
        raise _not_found(e)


@router.get("/colleges/{college_id}/departments/{dept_id}/levels", response_model=List[int], summary="List the levels a department offers")
async def list_levels(college_id: str, dept_id: str):
    try:
        return catalog.list_levels(college_id, dept_id)
    except catalog.CatalogLookupError as e:
        raise _not_found(e)


@router.get("/colleges/{college_id}/departments/{dept_id}/levels/{level}/courses", response_model=List[CourseResponse], summary="List the courses of a level")
async def list_courses(college_id: str, dept_id: str, level: int):
    try:
        return catalog.list_courses(college_id, dept_id, level)
    except catalog.CatalogLookupError as e:
        raise _not_found(e)
