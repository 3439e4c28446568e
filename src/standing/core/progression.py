"""Progression service.

Wires the catalogue and the three ledgers together:

    Catalogue -> GradeRepository -> decide() -> RegistrationRepository

plus recovery plans, keyed by (student_id, course_id). Everything is built
from an explicit ProgressionContext owned by the caller; there is no
module-level service instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from standing.config.app_config import AppConfig, get_data_dir, load_app_config
from standing.core.access import SYSTEM_OPERATOR, Capability, Operator
from standing.core.catalogue import Catalogue, Course, Student
from standing.core.eligibility import EligibilityDecision, decide
from standing.core.grade_repository import Grade, GradeRepository
from standing.core.recovery_plan import RecoveryPlan
from standing.core.recovery_repository import RecoveryPlanRepository
from standing.core.registration_repository import RegistrationRepository, RegistrationResult
from standing.utils.validators import NotFoundError

logger = structlog.get_logger(__name__)


@dataclass
class ProgressionContext:
    """Everything the service needs: where the data lives and who is acting."""

    data_dir: Path
    config: AppConfig = field(default_factory=AppConfig)
    operator: Operator = SYSTEM_OPERATOR

    @classmethod
    def from_environment(
        cls,
        data_dir: Path | None = None,
        operator: Operator | None = None,
    ) -> ProgressionContext:
        """Build a context from $STANDING_DATA_DIR and the YAML config."""
        return cls(
            data_dir=get_data_dir(data_dir),
            config=load_app_config(),
            operator=operator or SYSTEM_OPERATOR,
        )

    def path(self, name: str) -> Path:
        return self.config.paths.resolve(self.data_dir, name)


@dataclass
class EligibilityReport:
    """One row of the eligibility table."""

    student: Student
    decision: EligibilityDecision
    registered: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_id": self.student.student_id,
            "name": self.student.full_name,
            "registered": self.registered,
            **{k: v for k, v in self.decision.to_dict().items() if k != "student_id"},
        }


class ProgressionService:
    """Records grades, decides eligibility, registers and tracks recovery."""

    def __init__(self, context: ProgressionContext, catalogue: Catalogue | None = None):
        self.context = context
        self.catalogue = catalogue or Catalogue.from_files(
            context.path("students_csv"),
            context.path("courses_csv"),
        )
        self.grades = GradeRepository(context.path("grades_file"))
        self.registrations = RegistrationRepository(context.path("registration_file"))
        self.plans = RecoveryPlanRepository(context.path("plans_file"))
        self.policy = context.config.eligibility.to_policy()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def require_student(self, student_id: str) -> Student:
        student = self.catalogue.find_student(student_id)
        if student is None:
            raise NotFoundError("student", student_id)
        return student

    def require_course(self, course_id: str) -> Course:
        course = self.catalogue.find_course(course_id)
        if course is None:
            raise NotFoundError("course", course_id)
        return course

    # -------------------------------------------------------------------------
    # Grades
    # -------------------------------------------------------------------------

    def record_grade(self, student_id: str, course_id: str, attempt: int, letter: str) -> Grade:
        """Validate and upsert a grade attempt for a catalogued student and course.

        IDs are stored with their catalogue spelling.

        Raises:
            PermissionDeniedError: If the operator cannot record grades
            ValidationError: On invalid attempt or letter
            NotFoundError: If the student or course is unknown
            StorageError: If the grade ledger cannot be written
        """
        self.context.operator.require(Capability.RECORD_GRADES)
        grade = Grade(student_id=student_id, course_id=course_id, attempt=attempt, letter=letter)
        student = self.require_student(grade.student_id)
        course = self.require_course(grade.course_id)
        grade.student_id = student.student_id
        grade.course_id = course.course_id

        replaced = self.grades.upsert(grade)
        logger.info(
            "grade_recorded",
            student_id=grade.student_id,
            course_id=grade.course_id,
            attempt=grade.attempt,
            letter=grade.letter,
            operator=self.context.operator.username,
            replaced=replaced,
        )
        return grade

    # -------------------------------------------------------------------------
    # Eligibility
    # -------------------------------------------------------------------------

    def _decide(self, student: Student) -> EligibilityDecision:
        latest = self.grades.latest_attempt_per_course(student.student_id)
        return decide(student.student_id, latest, self.catalogue.course_credits(), self.policy)

    def evaluate(self, student_id: str) -> EligibilityDecision | None:
        """Fresh decision for a student, or None if the student is unknown."""
        student = self.catalogue.find_student(student_id)
        if student is None:
            return None
        return self._decide(student)

    def evaluate_all(self) -> list[EligibilityReport]:
        """Eligibility table for every catalogued student, in catalogue order."""
        return [
            EligibilityReport(
                student=student,
                decision=self._decide(student),
                registered=self.registrations.is_registered(student.student_id),
            )
            for student in self.catalogue.students
        ]

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def register(self, student_id: str) -> RegistrationResult:
        """Register a student for the next level if currently eligible.

        Raises:
            PermissionDeniedError: If the operator cannot register students
            NotFoundError: If the student is unknown
            StorageError: If the registration ledger cannot be written
        """
        self.context.operator.require(Capability.REGISTER_STUDENTS)
        student = self.require_student(student_id)
        decision = self._decide(student)
        return self.registrations.register_if_eligible(student.student_id, decision)

    # -------------------------------------------------------------------------
    # Recovery plans
    # -------------------------------------------------------------------------

    def load_plan(self, student_id: str, course_id: str) -> RecoveryPlan | None:
        return self.plans.load(student_id, course_id)

    def open_plan(self, student_id: str, course_id: str) -> RecoveryPlan:
        """Load the stored plan or start a new, empty (unsaved) one.

        Raises:
            NotFoundError: If the student or course is unknown
        """
        student = self.require_student(student_id)
        course = self.require_course(course_id)
        plan = self.plans.load(student.student_id, course.course_id)
        if plan is None:
            plan = RecoveryPlan(student_id=student.student_id, course_id=course.course_id)
        return plan

    def save_plan(self, plan: RecoveryPlan) -> Path:
        """Persist a plan.

        Raises:
            PermissionDeniedError: If the operator cannot manage plans
            StorageError: If the plan ledger cannot be written
        """
        self.context.operator.require(Capability.MANAGE_RECOVERY_PLANS)
        return self.plans.save(plan)
