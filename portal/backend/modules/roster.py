# portal/backend/modules/roster.py

import random
from typing import List, Optional

from ..models.db_models import Student

FIRST_NAMES = [
    "Taiwo", "Abiola", "Lekan", "Ibrahim", "Chidi", "Emeka", "Olawale", "Seyi", "Bolanle", "Uche",
    "Amina", "Zainab", "Fatima", "Bello", "Ade", "Tolu", "Kunle", "Funmi", "Tosin", "Yetunde",
]
LAST_NAMES = [
    "Eze", "Fashola", "Okoro", "Yusuf", "Adeyemi", "Ogunleye", "Balogun", "Aderinto", "Ojo", "Babatunde",
    "Danjuma", "Garba", "Nwachukwu", "Okonkwo", "Obinna",
]

DEFAULT_ROSTER_SIZE = 50


def department_code(department_id: str) -> str:
    """'computer-eng' -> 'COM'"""
    return department_id.upper()[:3]


def matric_number(institution: str, department_id: str, year: int, position: int) -> str:
    return f"{institution}/{department_code(department_id)}/{year}/{position:03d}"


def generate_students(
    department_id: str,
    *,
    size: int = DEFAULT_ROSTER_SIZE,
    institution: str = "LASU",
    year: int = 2023,
    rng: Optional[random.Random] = None,
) -> List[Student]:
    """
    Produces the placeholder roster for a department.

    Names are drawn from fixed first/last name pools; matriculation numbers are
    numbered 001..size in order. Every student starts with zero attendance.
    Without an explicit ``rng`` the draw is seeded from the department id, so the
    same department always gets the same names.

    Whether a roster already exists is the caller's concern; this function only
    builds the list.
    """
    if rng is None:
        rng = random.Random(department_id)

    students = []
    for position in range(1, size + 1):
        first_name = rng.choice(FIRST_NAMES)
        last_name = rng.choice(LAST_NAMES)
        students.append(Student(
            id=f"student-{department_id}-{position}",
            name=f"{first_name} {last_name}",
            matric_no=matric_number(institution, department_id, year, position),
            classes_attended=0,
            attendance_percentage=0.0,
        ))
    return students
