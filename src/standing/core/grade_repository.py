"""Grade repository module.

Responsibilities:
- Validate grade attempts (student, course, attempt 1-3, letter)
- Persist attempts to the grade ledger with upsert semantics
- Resolve the "current" grade per course as the latest attempt

Ledger format (pipe-delimited, header mandatory):
    StudentID|CourseID|Attempt|Grade
    S001|CS101|1|B+

Upsert is load-modify-store: the whole file is rewritten on every call.
Single-writer only; two processes upserting concurrently can silently lose
one of the updates.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from standing.core import ledger
from standing.utils.validators import ValidationError, clean, require_id, same_id

logger = structlog.get_logger(__name__)

HEADER = "StudentID|CourseID|Attempt|Grade"
GRADES_FILENAME = "grades.txt"

GRADE_POINTS: dict[str, float] = {
    "A": 4.0,
    "A-": 3.7,
    "B+": 3.3,
    "B": 3.0,
    "C+": 2.3,
    "C": 2.0,
    "D": 1.0,
    "F": 0.0,
}

FAILING_LETTER = "F"
MIN_ATTEMPT = 1
MAX_ATTEMPT = 3


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class Grade:
    """A single graded attempt at a course."""

    student_id: str
    course_id: str
    attempt: int
    letter: str

    def __post_init__(self):
        """Normalize fields and validate."""
        self.student_id = clean(self.student_id)
        self.course_id = clean(self.course_id)
        self.letter = clean(self.letter).upper()
        self.validate()

    def validate(self) -> None:
        """Check every field.

        Raises:
            ValidationError: On empty IDs, attempt outside 1-3 or unknown letter
        """
        require_id(self.student_id, "StudentID")
        require_id(self.course_id, "CourseID")
        if isinstance(self.attempt, bool) or not isinstance(self.attempt, int):
            raise ValidationError(f"Attempt must be an integer, got {self.attempt!r}")
        if not MIN_ATTEMPT <= self.attempt <= MAX_ATTEMPT:
            raise ValidationError(
                f"Attempt must be between {MIN_ATTEMPT} and {MAX_ATTEMPT}, got {self.attempt}"
            )
        if self.letter not in GRADE_POINTS:
            raise ValidationError(f"Invalid grade letter '{self.letter}'")

    @property
    def grade_point(self) -> float:
        """Grade point on the 4.0 scale."""
        return GRADE_POINTS[self.letter]

    @property
    def is_failed(self) -> bool:
        """Only F counts as a fail."""
        return self.letter == FAILING_LETTER

    def key(self) -> tuple[str, str, int]:
        """Upsert key: (student, course, attempt), IDs case-folded."""
        return (self.student_id.lower(), self.course_id.lower(), self.attempt)

    def to_line(self) -> str:
        """Serialize to a ledger line."""
        return ledger.join_fields(self.student_id, self.course_id, self.attempt, self.letter)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "attempt": self.attempt,
            "letter": self.letter,
            "grade_point": self.grade_point,
        }

    @classmethod
    def from_line(cls, text: str) -> Grade:
        """Parse a ledger line.

        Raises:
            ValidationError: If the line is malformed
        """
        parts = ledger.split_line(text)
        if len(parts) != 4:
            raise ValidationError(f"Expected 4 fields, got {len(parts)}")

        try:
            attempt = int(parts[2])
        except ValueError:
            raise ValidationError(f"Invalid attempt number '{parts[2]}'") from None

        return cls(
            student_id=parts[0],
            course_id=parts[1],
            attempt=attempt,
            letter=parts[3],
        )


def is_valid_letter(letter: str | None) -> bool:
    """Check a letter against the fixed grade scale (case-insensitive)."""
    return clean(letter).upper() in GRADE_POINTS


# =============================================================================
# REPOSITORY
# =============================================================================


class GradeRepository:
    """Upsert-based store of grade attempts backed by a pipe-delimited ledger."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_all(self) -> list[Grade]:
        """Parse every record in the ledger.

        Malformed lines are skipped with a warning. Read failures return
        an empty list.
        """
        lines = ledger.read_lines(self.path)
        if lines and lines[0].strip().lower() != HEADER.lower():
            logger.warning("grades.header_missing", path=str(self.path))

        grades = []
        for number, text in ledger.body_lines(lines, HEADER):
            try:
                grades.append(Grade.from_line(text))
            except ValidationError as e:
                ledger.skip_line(self.path, number, text, str(e))
        return grades

    def upsert(self, grade: Grade) -> bool:
        """Insert a grade, or replace the one with the same key in place.

        Args:
            grade: Grade to store

        Returns:
            True if an existing record was replaced, False if appended

        Raises:
            ValidationError: If the grade is invalid (nothing is written)
            StorageError: If the ledger cannot be rewritten
        """
        if not isinstance(grade, Grade):
            raise ValidationError(f"Expected a Grade, got {type(grade).__name__}")
        grade.validate()

        lines = ledger.with_header(ledger.read_lines(self.path), HEADER)
        key = grade.key()
        replaced = False

        for index, raw in enumerate(lines):
            text = raw.strip()
            if index == 0 or not text:
                continue
            try:
                existing = Grade.from_line(text)
            except ValidationError:
                continue
            if existing.key() == key:
                lines[index] = grade.to_line()
                replaced = True
                break

        if not replaced:
            lines.append(grade.to_line())

        ledger.write_lines(self.path, lines)
        logger.debug(
            "grades.upserted",
            student_id=grade.student_id,
            course_id=grade.course_id,
            attempt=grade.attempt,
            replaced=replaced,
        )
        return replaced

    def by_student(self, student_id: str) -> list[Grade]:
        """All grades for a student (case-insensitive ID match), in file order."""
        return [g for g in self.read_all() if same_id(g.student_id, student_id)]

    def latest_attempt_per_course(self, student_id: str) -> dict[str, Grade]:
        """Resolve the current grade per course.

        The current grade is the attempt with the highest number, regardless
        of the order in which attempts were written.

        Returns:
            Mapping course_id -> Grade, keyed by the first spelling seen
        """
        latest: dict[str, Grade] = {}
        spelling: dict[str, str] = {}

        for grade in self.by_student(student_id):
            folded = grade.course_id.lower()
            course_key = spelling.setdefault(folded, grade.course_id)
            current = latest.get(course_key)
            if current is None or grade.attempt > current.attempt:
                latest[course_key] = grade

        return latest
