import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models.db_models import Student

logger = logging.getLogger(__name__)


class SaveInProgressError(Exception):
    """Raised when a save is requested while another save on the same sheet is still running."""
    pass


def round2(value: float) -> float:
    """Rounds to two decimals, ties away from zero."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def attendance_percentage(classes_attended: int, classes_held: int) -> float:
    if classes_held <= 0:
        return 0.0
    percentage = round2(100 * classes_attended / classes_held)
    return min(100.0, max(0.0, percentage))


@dataclass(frozen=True)
class SessionOutcome:
    """Next roster state after one class has been held."""
    students: List[Student]
    classes_held: int
    present_ids: List[str]


def apply_session(students: List[Student], classes_held: int, marked_ids: Iterable[str]) -> Optional[SessionOutcome]:
    """
    Computes the roster after one more class.

    Every marked student gains one attended class and every student's percentage
    is recomputed against the new classes-held count. An empty mark set means no
    class is recorded at all and ``None`` is returned. Ids that are not on the
    roster are ignored. The input students are never mutated.
    """
    marked = set(marked_ids)
    if not marked:
        return None

    next_classes_held = classes_held + 1
    updated = []
    present_ids = []
    for student in students:
        attended = student.classes_attended
        if student.id in marked:
            attended += 1
            present_ids.append(student.id)
        # Never exceed the denominator, even if the stored roster was inconsistent.
        attended = min(attended, next_classes_held)
        updated.append(student.model_copy(update={
            "classes_attended": attended,
            "attendance_percentage": attendance_percentage(attended, next_classes_held),
        }))
    return SessionOutcome(students=updated, classes_held=next_classes_held, present_ids=present_ids)


@dataclass
class MarkSheet:
    """
    The working set of students marked present on one open attendance sheet.
    Nothing here touches storage; marks only matter once a save commits them.
    """
    department_id: str
    course_code: str
    marked: Set[str] = field(default_factory=set)

    def toggle(self, student_id: str) -> bool:
        """Flips the mark for a student and returns whether it is now marked."""
        if student_id in self.marked:
            self.marked.discard(student_id)
            return False
        self.marked.add(student_id)
        return True

    def clear(self):
        self.marked.clear()

    def sorted_marks(self) -> List[str]:
        return sorted(self.marked)


class SheetRegistry:
    """
    In-process registry of open mark sheets and of per-course save locks.

    Sheets are keyed by (login session, department, course) so two lecturers
    never share marks. The busy flag is keyed by (department, course): only one
    save per course can be in flight at a time on this process.
    """
    def __init__(self):
        self._sheets: Dict[Tuple[str, str, str], MarkSheet] = {}
        self._saving: Set[Tuple[str, str]] = set()

    def get_sheet(self, owner: str, department_id: str, course_code: str) -> MarkSheet:
        key = (owner, department_id, course_code)
        sheet = self._sheets.get(key)
        if sheet is None:
            sheet = MarkSheet(department_id=department_id, course_code=course_code)
            self._sheets[key] = sheet
        return sheet

    def release_sheet(self, owner: str, department_id: str, course_code: str):
        """Forgets a sheet once it holds no marks; a sheet with marks is kept."""
        key = (owner, department_id, course_code)
        sheet = self._sheets.get(key)
        if sheet is not None and not sheet.marked:
            del self._sheets[key]

    def open_sheet_count(self) -> int:
        return len(self._sheets)

    def drop_owner(self, owner: str):
        """Forgets every sheet opened by one login session."""
        for key in [key for key in self._sheets if key[0] == owner]:
            del self._sheets[key]

    def is_saving(self, department_id: str, course_code: str) -> bool:
        return (department_id, course_code) in self._saving

    def begin_save(self, department_id: str, course_code: str):
        key = (department_id, course_code)
        if key in self._saving:
            logger.warning(f"Save for {department_id}/{course_code} refused; another save is still in flight.")
            raise SaveInProgressError("Attendance for this course is already being saved. Please wait.")
        self._saving.add(key)

    def end_save(self, department_id: str, course_code: str):
        self._saving.discard((department_id, course_code))
