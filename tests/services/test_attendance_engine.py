import random

import pytest

from portal.backend.models.db_models import Student
from portal.backend.services.attendance_engine import (
    round2,
    attendance_percentage,
    apply_session,
    MarkSheet,
    SheetRegistry,
    SaveInProgressError,
)


# --- Rounding and percentage ---

def test_round2_rounds_half_away_from_zero():
    assert round2(33.333333) == 33.33
    assert round2(66.666666) == 66.67
    assert round2(12.345) == 12.35
    assert round2(50.0) == 50.0


def test_percentage_is_zero_without_classes():
    assert attendance_percentage(0, 0) == 0.0


def test_percentage_is_clamped():
    assert attendance_percentage(3, 3) == 100.0
    assert attendance_percentage(5, 3) == 100.0
    assert attendance_percentage(1, 3) == 33.33


# --- Sessions ---

def test_first_session(three_students):
    outcome = apply_session(three_students, 0, {"student-csc-1"})

    assert outcome.classes_held == 1
    s1, s2, s3 = outcome.students
    assert (s1.classes_attended, s1.attendance_percentage) == (1, 100.0)
    assert (s2.classes_attended, s2.attendance_percentage) == (0, 0.0)
    assert (s3.classes_attended, s3.attendance_percentage) == (0, 0.0)
    assert outcome.present_ids == ["student-csc-1"]


def test_second_session_recomputes_everyone(three_students):
    first = apply_session(three_students, 0, {"student-csc-1"})
    second = apply_session(first.students, first.classes_held, {"student-csc-1", "student-csc-2"})

    assert second.classes_held == 2
    s1, s2, s3 = second.students
    assert (s1.classes_attended, s1.attendance_percentage) == (2, 100.0)
    assert (s2.classes_attended, s2.attendance_percentage) == (1, 50.0)
    assert (s3.classes_attended, s3.attendance_percentage) == (0, 0.0)


def test_empty_marks_is_no_op(three_students):
    assert apply_session(three_students, 4, set()) is None
    assert apply_session(three_students, 4, []) is None


def test_input_roster_is_not_mutated(three_students):
    apply_session(three_students, 0, {"student-csc-1"})
    assert three_students[0].classes_attended == 0
    assert three_students[0].attendance_percentage == 0.0


def test_ids_not_on_roster_are_ignored(three_students):
    outcome = apply_session(three_students, 0, {"student-csc-1", "student-xyz-9"})
    assert outcome.present_ids == ["student-csc-1"]
    assert outcome.classes_held == 1


def test_invariants_hold_over_random_sessions():
    rng = random.Random(42)
    students = [Student(id=f"s{i}", name=f"S {i}", matric_no=f"M/{i:03d}") for i in range(20)]
    classes_held = 0

    for _ in range(30):
        marks = {s.id for s in students if rng.random() < 0.5}
        outcome = apply_session(students, classes_held, marks)
        if not marks:
            assert outcome is None
            continue
        assert outcome.classes_held == classes_held + 1
        students, classes_held = outcome.students, outcome.classes_held

        for student in students:
            assert 0 <= student.classes_attended <= classes_held
            assert student.attendance_percentage == round2(100 * student.classes_attended / classes_held)


# --- Mark sheet ---

def test_toggle_flips_membership():
    sheet = MarkSheet(department_id="csc", course_code="CSC102")
    assert sheet.toggle("student-csc-1") is True
    assert sheet.marked == {"student-csc-1"}
    assert sheet.toggle("student-csc-1") is False
    assert sheet.marked == set()


def test_clear_and_sorted_marks():
    sheet = MarkSheet(department_id="csc", course_code="CSC102")
    sheet.toggle("b")
    sheet.toggle("a")
    assert sheet.sorted_marks() == ["a", "b"]
    sheet.clear()
    assert sheet.sorted_marks() == []


# --- Registry ---

def test_registry_returns_same_sheet_per_owner_and_course():
    registry = SheetRegistry()
    a = registry.get_sheet("owner-1", "csc", "CSC102")
    assert registry.get_sheet("owner-1", "csc", "CSC102") is a
    assert registry.get_sheet("owner-2", "csc", "CSC102") is not a
    assert registry.get_sheet("owner-1", "csc", "CSC104") is not a


def test_registry_drop_owner_forgets_marks():
    registry = SheetRegistry()
    registry.get_sheet("owner-1", "csc", "CSC102").toggle("x")
    registry.drop_owner("owner-1")
    assert registry.get_sheet("owner-1", "csc", "CSC102").marked == set()


def test_registry_refuses_second_save_while_busy():
    registry = SheetRegistry()
    registry.begin_save("csc", "CSC102")
    assert registry.is_saving("csc", "CSC102")

    with pytest.raises(SaveInProgressError):
        registry.begin_save("csc", "CSC102")

    # Another course is unaffected.
    registry.begin_save("csc", "CSC104")

    registry.end_save("csc", "CSC102")
    assert not registry.is_saving("csc", "CSC102")
    registry.begin_save("csc", "CSC102")


def test_registry_releases_only_empty_sheets():
    registry = SheetRegistry()
    registry.get_sheet("owner-1", "csc", "CSC102")
    registry.get_sheet("owner-1", "csc", "CSC104").toggle("student-csc-1")
    assert registry.open_sheet_count() == 2

    registry.release_sheet("owner-1", "csc", "CSC102")
    registry.release_sheet("owner-1", "csc", "CSC104")

    assert registry.open_sheet_count() == 1
    assert registry.get_sheet("owner-1", "csc", "CSC104").marked == {"student-csc-1"}
    # Releasing an unknown sheet is harmless.
    registry.release_sheet("owner-2", "csc", "CSC102")
