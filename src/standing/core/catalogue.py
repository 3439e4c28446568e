"""Catalogue module (read-only student and course directories).

Parses the two catalogue CSV files:
- students: StudentID,FirstName,LastName,Major,Year,Email
- courses:  CourseID,CourseName,Credits,Semester,Instructor,ExamWeight,AssignmentWeight

The first row of each file is a header. Rows with missing columns, bad
numbers or invalid values are skipped with a warning. Courses whose exam and
assignment weights do not add up to 100 are kept and reported.
"""

from __future__ import annotations

import csv
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from standing.utils.validators import ValidationError, clean, require_id, require_text, same_id

logger = structlog.get_logger(__name__)

STUDENTS_FILENAME = "student_information.csv"
COURSES_FILENAME = "course_assessment_information.csv"

STUDENT_COLUMNS = 6
COURSE_COLUMNS = 7
TOTAL_WEIGHT = 100

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class Student:
    """Catalogue entry for a student."""

    student_id: str
    first_name: str
    last_name: str
    major: str = ""
    year: str = ""  # e.g. "Year 1"
    email: str = ""

    def __post_init__(self):
        self.student_id = require_id(self.student_id, "StudentID")
        self.first_name = clean(self.first_name)
        self.last_name = clean(self.last_name)
        self.major = clean(self.major)
        self.year = clean(self.year)
        self.email = clean(self.email)

    @property
    def full_name(self) -> str:
        """First and last name, skipping empty parts."""
        return " ".join(p for p in (self.first_name, self.last_name) if p)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_id": self.student_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "major": self.major,
            "year": self.year,
            "email": self.email,
        }


@dataclass
class Course:
    """Catalogue entry for a course, including its credit hours."""

    course_id: str
    name: str
    credits: int
    semester: str = ""
    instructor: str = ""
    exam_weight: int = 0
    assignment_weight: int = 0

    def __post_init__(self):
        self.course_id = require_id(self.course_id, "CourseID")
        self.name = require_text(self.name, "CourseName")
        self.semester = clean(self.semester)
        self.instructor = clean(self.instructor)
        if self.credits <= 0:
            raise ValidationError(f"Credits must be positive, got {self.credits}")
        for label, weight in (
            ("ExamWeight", self.exam_weight),
            ("AssignmentWeight", self.assignment_weight),
        ):
            if not 0 <= weight <= TOTAL_WEIGHT:
                raise ValidationError(f"{label} must be between 0 and {TOTAL_WEIGHT}, got {weight}")

    @property
    def total_weight(self) -> int:
        return self.exam_weight + self.assignment_weight

    @property
    def is_weight_valid(self) -> bool:
        """Exam and assignment weights should add up to 100."""
        return self.total_weight == TOTAL_WEIGHT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "course_id": self.course_id,
            "name": self.name,
            "credits": self.credits,
            "semester": self.semester,
            "instructor": self.instructor,
            "exam_weight": self.exam_weight,
            "assignment_weight": self.assignment_weight,
        }


# =============================================================================
# CSV PARSING
# =============================================================================


def _read_rows(path: Path) -> list[tuple[int, list[str]]]:
    """Read CSV data rows (header skipped) with their line numbers."""
    if not path.exists():
        logger.warning("catalogue.not_found", path=str(path))
        return []

    try:
        with open(path, encoding="utf-8", newline="") as f:
            rows = [
                (reader_line, row)
                for reader_line, row in enumerate(csv.reader(f), start=1)
                if any(cell.strip() for cell in row)
            ]
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        logger.warning("catalogue.read_failed", path=str(path), error=str(e))
        return []

    return rows[1:]


def _skip_row(path: Path, number: int, row: list[str], reason: str) -> None:
    logger.warning(
        "catalogue.row_skipped",
        path=str(path),
        line=number,
        content=",".join(row),
        reason=reason,
    )


def load_students(path: Path) -> list[Student]:
    """Parse the student directory CSV.

    Args:
        path: Path to student_information.csv

    Returns:
        Students in file order (empty if the file is missing or unreadable)
    """
    path = Path(path)
    students = []
    for number, row in _read_rows(path):
        if len(row) < STUDENT_COLUMNS:
            _skip_row(path, number, row, f"expected {STUDENT_COLUMNS} columns")
            continue
        try:
            student = Student(*(cell.strip() for cell in row[:STUDENT_COLUMNS]))
        except ValidationError as e:
            _skip_row(path, number, row, str(e))
            continue
        if student.email and not EMAIL_PATTERN.match(student.email):
            logger.warning(
                "catalogue.invalid_email",
                student_id=student.student_id,
                email=student.email,
            )
        students.append(student)
    return students


def load_courses(path: Path) -> list[Course]:
    """Parse the course assessment CSV.

    Args:
        path: Path to course_assessment_information.csv

    Returns:
        Courses in file order (empty if the file is missing or unreadable)
    """
    path = Path(path)
    courses = []
    for number, row in _read_rows(path):
        if len(row) < COURSE_COLUMNS:
            _skip_row(path, number, row, f"expected {COURSE_COLUMNS} columns")
            continue
        cells = [cell.strip() for cell in row[:COURSE_COLUMNS]]
        try:
            course = Course(
                course_id=cells[0],
                name=cells[1],
                credits=int(cells[2]),
                semester=cells[3],
                instructor=cells[4],
                exam_weight=int(cells[5]),
                assignment_weight=int(cells[6]),
            )
        except ValueError as e:
            _skip_row(path, number, row, f"invalid number: {e}")
            continue
        except ValidationError as e:
            _skip_row(path, number, row, str(e))
            continue
        courses.append(course)
    return courses


# =============================================================================
# CATALOGUE
# =============================================================================


class Catalogue:
    """In-memory view of the student and course directories."""

    def __init__(self, students: list[Student], courses: list[Course]):
        self.students = list(students)
        self.courses = list(courses)
        for course in self.courses_with_invalid_weights():
            logger.warning(
                "catalogue.invalid_weights",
                course_id=course.course_id,
                exam_weight=course.exam_weight,
                assignment_weight=course.assignment_weight,
                total=course.total_weight,
            )

    @classmethod
    def from_files(cls, students_path: Path, courses_path: Path) -> Catalogue:
        """Load both directories from CSV."""
        return cls(load_students(students_path), load_courses(courses_path))

    def find_student(self, student_id: str) -> Student | None:
        """Student by ID (case-insensitive), or None."""
        if not clean(student_id):
            return None
        for student in self.students:
            if same_id(student.student_id, student_id):
                return student
        return None

    def find_course(self, course_id: str) -> Course | None:
        """Course by ID (case-insensitive), or None."""
        if not clean(course_id):
            return None
        for course in self.courses:
            if same_id(course.course_id, course_id):
                return course
        return None

    def course_credits(self) -> dict[str, int]:
        """course_id -> credit hours, as consumed by eligibility.decide()."""
        return {course.course_id: course.credits for course in self.courses}

    def courses_with_invalid_weights(self) -> list[Course]:
        """Courses whose exam and assignment weights do not add up to 100."""
        return [c for c in self.courses if not c.is_weight_valid]
