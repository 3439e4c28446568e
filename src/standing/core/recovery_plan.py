"""Recovery plan model.

A recovery plan is an ordered checklist of milestones for one
(student, course) pair. The plan's `completed` flag is derived and kept in
sync after every mutation: it is True iff the plan has at least one
milestone and all of them are completed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from standing.utils.validators import ValidationError, require_id, require_text


@dataclass
class Milestone:
    """A single recovery task with a deadline (free text, e.g. "Week 2")."""

    title: str
    deadline: str
    completed: bool = False

    def __post_init__(self):
        self.title = require_text(self.title, "Milestone title")
        self.deadline = require_text(self.deadline, "Milestone deadline")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "title": self.title,
            "deadline": self.deadline,
            "completed": self.completed,
        }


@dataclass
class RecoveryPlan:
    """Milestone checklist for a student who must recover a course."""

    student_id: str
    course_id: str
    milestones: list[Milestone] = field(default_factory=list)
    completed: bool = field(default=False, init=False)

    def __post_init__(self):
        self.student_id = require_id(self.student_id, "StudentID")
        self.course_id = require_id(self.course_id, "CourseID")
        self.milestones = list(self.milestones)
        self._refresh_completion()

    # -------------------------------------------------------------------------
    # Milestone management
    # -------------------------------------------------------------------------

    def add_milestone(self, milestone: Milestone) -> None:
        """Append a milestone."""
        if not isinstance(milestone, Milestone):
            raise ValidationError(f"Expected a Milestone, got {type(milestone).__name__}")
        self.milestones.append(milestone)
        self._refresh_completion()

    def update_milestone_status(self, index: int, completed: bool) -> None:
        """Mark the milestone at index as completed or pending."""
        self._milestone_at(index).completed = bool(completed)
        self._refresh_completion()

    def edit_milestone(
        self,
        index: int,
        title: str | None = None,
        deadline: str | None = None,
        completed: bool | None = None,
    ) -> None:
        """Change any of a milestone's fields; None leaves a field as is."""
        milestone = self._milestone_at(index)
        if title is not None:
            milestone.title = require_text(title, "Milestone title")
        if deadline is not None:
            milestone.deadline = require_text(deadline, "Milestone deadline")
        if completed is not None:
            milestone.completed = bool(completed)
        self._refresh_completion()

    def remove_milestone(self, index: int) -> Milestone:
        """Remove and return the milestone at index."""
        self._milestone_at(index)
        removed = self.milestones.pop(index)
        self._refresh_completion()
        return removed

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def completed_count(self) -> int:
        return sum(1 for m in self.milestones if m.completed)

    def key(self) -> tuple[str, str]:
        """Lookup key, IDs case-folded."""
        return (self.student_id.lower(), self.course_id.lower())

    def _milestone_at(self, index: int) -> Milestone:
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValidationError(f"Milestone index must be an integer, got {index!r}")
        if not 0 <= index < len(self.milestones):
            raise ValidationError(
                f"Milestone index {index} out of range (plan has {len(self.milestones)})"
            )
        return self.milestones[index]

    def _refresh_completion(self) -> None:
        self.completed = bool(self.milestones) and all(m.completed for m in self.milestones)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "completed": self.completed,
            "progress": progress(self),
            "milestones": [m.to_dict() for m in self.milestones],
        }


def progress(plan: RecoveryPlan | None) -> int:
    """Percentage of completed milestones, floored. 0 for an empty plan."""
    if plan is None or not plan.milestones:
        return 0
    return (100 * plan.completed_count) // len(plan.milestones)


def format_action_plan(plan: RecoveryPlan) -> str:
    """Render the plan as a plain-text checklist.

    One line per milestone: ``- <title> (<deadline>) [DONE]``.
    """
    lines = []
    for milestone in plan.milestones:
        line = f"- {milestone.title} ({milestone.deadline})"
        if milestone.completed:
            line += " [DONE]"
        lines.append(line)
    return "\n".join(lines)


def summarize(plan: RecoveryPlan) -> str:
    """One-line status, e.g. ``S001/CS101: 1/3 milestones (33%, in progress)``."""
    status = "completed" if plan.completed else "in progress"
    return (
        f"{plan.student_id}/{plan.course_id}: "
        f"{plan.completed_count}/{len(plan.milestones)} milestones "
        f"({progress(plan)}%, {status})"
    )
