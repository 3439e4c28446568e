"""Eligibility engine.

Turns a student's latest-attempt grades plus catalogue credit hours into a
progression decision:

    CGPA   = sum(grade_point * credits) / sum(credits)
    failed = number of latest attempts graded F
    ELIGIBLE  iff  CGPA >= MIN_CGPA and failed <= MAX_FAILED_COURSES

When no grade resolves to a course with credit hours the CGPA is undefined
and the status is PENDING_RESULTS, which is neither eligible nor ineligible.

decide() is pure: no caching, no I/O. Callers recompute on every request.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from standing.core.grade_repository import Grade

MIN_CGPA = 2.0
MAX_FAILED_COURSES = 3


class EligibilityStatus(str, Enum):
    """Outcome of an eligibility check."""

    ELIGIBLE = "ELIGIBLE"
    NOT_ELIGIBLE = "NOT_ELIGIBLE"
    PENDING_RESULTS = "PENDING_RESULTS"


@dataclass(frozen=True)
class EligibilityPolicy:
    """Thresholds applied by decide()."""

    min_cgpa: float = MIN_CGPA
    max_failed_courses: int = MAX_FAILED_COURSES


DEFAULT_POLICY = EligibilityPolicy()


@dataclass(frozen=True)
class EligibilityDecision:
    """Derived eligibility for one student. Never persisted."""

    student_id: str
    cgpa: float | None
    failed_courses: int
    status: EligibilityStatus
    reason: str
    total_credits: int = 0
    unresolved_courses: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_eligible(self) -> bool:
        return self.status is EligibilityStatus.ELIGIBLE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_id": self.student_id,
            "cgpa": self.cgpa,
            "failed_courses": self.failed_courses,
            "status": self.status.value,
            "reason": self.reason,
            "total_credits": self.total_credits,
            "unresolved_courses": list(self.unresolved_courses),
        }


def compute_cgpa(grades: list[tuple[Grade, int]]) -> float | None:
    """Credit-weighted grade point average.

    Args:
        grades: (grade, credits) pairs with positive credits

    Returns:
        The unrounded CGPA, or None when total credits are zero
    """
    total_credits = sum(credits for _, credits in grades)
    if total_credits == 0:
        return None
    total_points = sum(grade.grade_point * credits for grade, credits in grades)
    return total_points / total_credits


def _cgpa_clause(cgpa: float, policy: EligibilityPolicy) -> tuple[bool, str]:
    if cgpa >= policy.min_cgpa:
        return True, f"CGPA requirement met ({cgpa:.2f} >= {policy.min_cgpa:.2f})."
    return False, f"CGPA is below {policy.min_cgpa:.2f} (current CGPA: {cgpa:.2f})."


def _failed_clause(failed: int, policy: EligibilityPolicy) -> tuple[bool, str]:
    if failed <= policy.max_failed_courses:
        return True, (
            f"Failed courses requirement met "
            f"(current: {failed}, allowed: {policy.max_failed_courses})."
        )
    return False, (
        f"Too many failed courses "
        f"(allowed: {policy.max_failed_courses}, current: {failed})."
    )


def decide(
    student_id: str,
    latest_grades: Mapping[str, Grade],
    course_credits: Mapping[str, int],
    policy: EligibilityPolicy | None = None,
) -> EligibilityDecision:
    """Decide whether a student may progress to the next level.

    Args:
        student_id: Student identifier, copied into the decision
        latest_grades: Latest attempt per course (see
            GradeRepository.latest_attempt_per_course)
        course_credits: course_id -> credit hours (case-insensitive keys)
        policy: Thresholds; defaults to MIN_CGPA / MAX_FAILED_COURSES

    Returns:
        EligibilityDecision with both threshold clauses in the reason
    """
    policy = policy or DEFAULT_POLICY

    if not latest_grades:
        return EligibilityDecision(
            student_id=student_id,
            cgpa=None,
            failed_courses=0,
            status=EligibilityStatus.PENDING_RESULTS,
            reason="Pending results (no grades entered).",
        )

    credits_by_course = {cid.lower(): credits for cid, credits in course_credits.items()}

    weighted: list[tuple[Grade, int]] = []
    unresolved: list[str] = []
    for course_id, grade in latest_grades.items():
        credits = credits_by_course.get(course_id.lower(), 0)
        if credits <= 0:
            unresolved.append(course_id)
            continue
        weighted.append((grade, credits))

    failed = sum(1 for grade, _ in weighted if grade.is_failed)
    total_credits = sum(credits for _, credits in weighted)
    cgpa = compute_cgpa(weighted)

    if cgpa is None:
        return EligibilityDecision(
            student_id=student_id,
            cgpa=None,
            failed_courses=failed,
            status=EligibilityStatus.PENDING_RESULTS,
            reason="Pending results (missing credit hours for courses).",
            unresolved_courses=tuple(unresolved),
        )

    cgpa_ok, cgpa_text = _cgpa_clause(cgpa, policy)
    failed_ok, failed_text = _failed_clause(failed, policy)

    if cgpa_ok and failed_ok:
        status = EligibilityStatus.ELIGIBLE
        verdict = "Student is eligible to progress to the next level."
    else:
        status = EligibilityStatus.NOT_ELIGIBLE
        verdict = "Student is NOT eligible to progress. Please create a recovery plan."

    return EligibilityDecision(
        student_id=student_id,
        cgpa=round(cgpa, 2),
        failed_courses=failed,
        status=status,
        reason=f"{cgpa_text} {failed_text} {verdict}",
        total_credits=total_credits,
        unresolved_courses=tuple(unresolved),
    )
