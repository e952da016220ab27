# portal/backend/modules/catalog.py

from typing import Dict, List, Tuple
from pydantic import BaseModel, ConfigDict


class CatalogLookupError(LookupError):
    """Raised when a college, department, level or course id is not in the catalog."""
    pass


class Course(BaseModel):
    id: str
    code: str
    title: str
    semester: int

    model_config = ConfigDict(frozen=True)


class Department(BaseModel):
    id: str
    name: str
    levels: Tuple[int, ...]
    courses: Dict[int, Tuple[Course, ...]]

    model_config = ConfigDict(frozen=True)


class College(BaseModel):
    id: str
    name: str
    departments: Tuple[Department, ...]

    model_config = ConfigDict(frozen=True)


ENGINEERING_LEVELS = (100, 200, 300, 400, 500)
DEFAULT_LEVELS = (100, 200, 300, 400)


def _engineering_courses(level: int) -> Tuple[Course, ...]:
    return (
        Course(id=f"eng-{level}-1", code=f"GET{level + 2}", title=f"Engineering Analysis {'I' if level == 200 else 'II'}", semester=2),
        Course(id=f"eng-{level}-2", code=f"GET{level + 4}", title="Technical Report Writing", semester=2),
        Course(id=f"eng-{level}-3", code=f"MEC{level + 2}", title="Workshop Practice III", semester=2),
        Course(id=f"eng-{level}-4", code=f"ELE{level + 6}", title="Circuit Theory", semester=2),
        Course(id=f"eng-{level}-5", code=f"CVE{level + 8}", title="Strength of Materials", semester=2),
    )


def _general_courses(dept_code: str, level: int) -> Tuple[Course, ...]:
    return (
        Course(id=f"{dept_code}-{level}-1", code=f"{dept_code}{level + 2}", title=f"Introduction to {dept_code} Studies II", semester=2),
        Course(id=f"{dept_code}-{level}-2", code=f"{dept_code}{level + 4}", title="Advanced Research Methods", semester=2),
        Course(id=f"{dept_code}-{level}-3", code=f"{dept_code}{level + 6}", title="Professional Ethics", semester=2),
        Course(id=f"{dept_code}-{level}-4", code=f"GNS{level + 2}", title="Peace and Conflict Resolution", semester=2),
    )


MECHANICAL_100_LEVEL = (
    Course(id="get102", code="GET102", title="Engineering graphics and solid modelling", semester=2),
    Course(id="chm102", code="CHM102", title="General chemistry 11", semester=2),
    Course(id="chm108", code="CHM108", title="General practical chemistry 11", semester=2),
    Course(id="mth102", code="MTH102", title="Elementary mathematics 11", semester=2),
    Course(id="phy102", code="PHY102", title="General practical 11", semester=2),
    Course(id="phy108", code="PHY108", title="General practical physics 11", semester=2),
    Course(id="sta112", code="STA112", title="Probability", semester=2),
    Course(id="phy104", code="PHY104", title="General physics 1V", semester=2),
    Course(id="yor102", code="YOR102", title="Communication in yoruba", semester=2),
)


def _department(dept_id: str, name: str, levels: Tuple[int, ...] = DEFAULT_LEVELS, courses: Dict[int, Tuple[Course, ...]] = None) -> Department:
    """Builds a department, filling any level without courses with the general course set."""
    courses = dict(courses or {})
    for level in levels:
        if not courses.get(level):
            courses[level] = _general_courses(dept_id.upper(), level)
    return Department(id=dept_id, name=name, levels=levels, courses=courses)


COLLEGES: Tuple[College, ...] = (
    College(id="engineering", name="College of Engineering", departments=(
        _department("mec", "Mechanical Engineering", ENGINEERING_LEVELS, {
            100: MECHANICAL_100_LEVEL,
            200: _engineering_courses(200),
            300: _engineering_courses(300),
            400: _engineering_courses(400),
            500: _engineering_courses(500),
        }),
        _department("mechatronics", "Mechatronics Engineering", ENGINEERING_LEVELS),
        _department("chemical", "Chemical Engineering", ENGINEERING_LEVELS),
        _department("elec", "Elect/Electrical Engineering", ENGINEERING_LEVELS),
        _department("civil", "Civil Engineering", ENGINEERING_LEVELS),
        _department("computer-eng", "Computer Engineering", ENGINEERING_LEVELS),
        _department("agric-eng", "Agriculture Engineering", ENGINEERING_LEVELS),
        _department("food-sci", "Food Science and Technology", ENGINEERING_LEVELS),
    )),
    College(id="basic-science", name="College of Basic Science", departments=(
        _department("csc", "Computer Science"),
        _department("mth", "Mathematics"),
        _department("ind-mth", "Industrial Mathematics"),
        _department("sta", "Statistics"),
        _department("chm", "Chemistry"),
        _department("ind-chm", "Industrial Chemistry"),
        _department("bch", "Biochemistry"),
        _department("zoo", "Zoology"),
        _department("bot", "Botany"),
        _department("mcb", "Microbiology"),
    )),
    College(id="applied-social", name="College of Applied Social-Science", departments=(
        _department("eco", "Economics"),
        _department("acc", "Accounting"),
        _department("oim", "Office and Information Management (OIM)"),
        _department("ins", "Insurance"),
        _department("bnf", "Banking and Finance"),
        _department("act", "Actuarial Science"),
        _department("bus", "Business Administration"),
        _department("mcm", "Mass Communication"),
    )),
    College(id="environmental", name="College of Environmental", departments=(
        _department("arc", "Architecture"),
        _department("qts", "Quantity Survey"),
        _department("art", "Art and Design"),
        _department("urp", "Urban and Regional Planning"),
        _department("esm", "Estate Management"),
        _department("bld", "Building Tech"),
    )),
    College(id="agriculture", name="College of Agriculture", departments=(
        _department("ans", "Department of Animal Science"),
        _department("aee", "Department of Agricultural Economics and Extension"),
        _department("agr", "Department of Agronomy"),
        _department("ffw", "Department of Fisheries and Wildlife Management"),
    )),
)


def list_colleges() -> List[College]:
    return list(COLLEGES)


def get_college(college_id: str) -> College:
    for college in COLLEGES:
        if college.id == college_id:
            return college
    raise CatalogLookupError(f"College '{college_id}' does not exist.")


def get_department(college_id: str, dept_id: str) -> Department:
    for department in get_college(college_id).departments:
        if department.id == dept_id:
            return department
    raise CatalogLookupError(f"Department '{dept_id}' does not exist in college '{college_id}'.")


def list_levels(college_id: str, dept_id: str) -> List[int]:
    return list(get_department(college_id, dept_id).levels)


def list_courses(college_id: str, dept_id: str, level: int) -> List[Course]:
    department = get_department(college_id, dept_id)
    if level not in department.levels:
        raise CatalogLookupError(f"Level {level} is not offered by department '{dept_id}'.")
    return list(department.courses.get(level, ()))


def find_department(dept_id: str) -> Department:
    """Finds a department by id alone; department ids are unique across colleges."""
    for college in COLLEGES:
        for department in college.departments:
            if department.id == dept_id:
                return department
    raise CatalogLookupError(f"Department '{dept_id}' does not exist.")


def department_offers(dept_id: str, course_code: str) -> Course:
    """
    Returns the course with the given code if the department offers it at any level.
    The attendance sheet is only ever opened for a (department, course) pair that
    the navigation could reach.
    """
    department = find_department(dept_id)
    code = course_code.strip().upper()
    for level in department.levels:
        for course in department.courses.get(level, ()):
            if course.code == code:
                return course
    raise CatalogLookupError(f"Course '{code}' is not offered by department '{dept_id}'.")
