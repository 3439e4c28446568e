"""Recovery plan repository module.

Responsibilities:
- Persist recovery plans as named blocks inside one shared plan ledger
- Load a plan by exact (student_id, course_id) match

Ledger format (no header; repeating blocks):
    PLAN|S001|CS101
    MILESTONE|Revise lecture notes 1-4|Week 2|true
    MILESTONE|Resubmit assignment|2025-04-10|false
    PLAN|S002|MA201

A block runs from its PLAN line to the next PLAN line or end of file.
Pipes and line breaks in titles and deadlines are replaced with spaces
before writing. save() rewrites the whole file: single writer only.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from standing.core import ledger
from standing.core.recovery_plan import Milestone, RecoveryPlan
from standing.utils.validators import ValidationError, require_id, sanitize_field

logger = structlog.get_logger(__name__)

PLANS_FILENAME = "recovery_plans.txt"

PLAN_TAG = "PLAN"
MILESTONE_TAG = "MILESTONE"
TRUE_VALUES = {"true", "yes"}
FALSE_VALUES = {"false", "no"}


# =============================================================================
# SERIALIZATION
# =============================================================================


def serialize_plan(plan: RecoveryPlan) -> list[str]:
    """Serialize a plan to its ledger block."""
    lines = [ledger.join_fields(PLAN_TAG, plan.student_id, plan.course_id)]
    for milestone in plan.milestones:
        lines.append(
            ledger.join_fields(
                MILESTONE_TAG,
                sanitize_field(milestone.title),
                sanitize_field(milestone.deadline),
                "true" if milestone.completed else "false",
            )
        )
    return lines


def _parse_plan_header(parts: list[str]) -> RecoveryPlan:
    if len(parts) != 3:
        raise ValidationError(f"PLAN line expects 3 fields, got {len(parts)}")
    return RecoveryPlan(student_id=parts[1], course_id=parts[2])


def _parse_milestone(parts: list[str]) -> Milestone:
    if len(parts) != 4:
        raise ValidationError(f"MILESTONE line expects 4 fields, got {len(parts)}")
    flag = parts[3].lower()
    if flag not in TRUE_VALUES | FALSE_VALUES:
        raise ValidationError(f"Invalid completed flag '{parts[3]}'")
    return Milestone(title=parts[1], deadline=parts[2], completed=flag in TRUE_VALUES)


# =============================================================================
# REPOSITORY
# =============================================================================


class RecoveryPlanRepository:
    """Block-structured store of recovery plans."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _blocks(self, lines: list[str]) -> list[tuple[tuple[str, str] | None, list[str]]]:
        """Split raw lines into (key, lines) blocks.

        Lines before the first PLAN header form a block with key None, and so
        does every malformed PLAN header together with its milestones.
        """
        blocks: list[tuple[tuple[str, str] | None, list[str]]] = [(None, [])]
        for raw in lines:
            text = raw.strip()
            if not text:
                continue
            parts = ledger.split_line(text)
            if parts[0].upper() == PLAN_TAG:
                key = None
                if len(parts) == 3 and parts[1] and parts[2]:
                    key = (parts[1].lower(), parts[2].lower())
                blocks.append((key, [raw]))
            else:
                blocks[-1][1].append(raw)
        return blocks

    def read_all(self) -> list[RecoveryPlan]:
        """Parse every plan in the ledger, in file order.

        Malformed lines are skipped with a warning. Milestone lines that
        appear before any PLAN header are orphans and are skipped too. So are
        the milestones under a malformed PLAN header.
        """
        plans: list[RecoveryPlan] = []
        current: RecoveryPlan | None = None

        for number, text in ledger.body_lines(ledger.read_lines(self.path)):
            parts = ledger.split_line(text)
            tag = parts[0].upper()
            try:
                if tag == PLAN_TAG:
                    current = None
                    current = _parse_plan_header(parts)
                    plans.append(current)
                elif tag == MILESTONE_TAG:
                    if current is None:
                        raise ValidationError("MILESTONE line outside of a PLAN block")
                    current.add_milestone(_parse_milestone(parts))
                else:
                    raise ValidationError(f"Unknown record tag '{parts[0]}'")
            except ValidationError as e:
                ledger.skip_line(self.path, number, text, str(e))

        return plans

    def load(self, student_id: str, course_id: str) -> RecoveryPlan | None:
        """Load the plan for (student_id, course_id), or None if absent."""
        key = (
            require_id(student_id, "StudentID").lower(),
            require_id(course_id, "CourseID").lower(),
        )
        for plan in self.read_all():
            if plan.key() == key:
                return plan
        return None

    def exists(self, student_id: str, course_id: str) -> bool:
        return self.load(student_id, course_id) is not None

    def list_plans(self, student_id: str) -> list[RecoveryPlan]:
        """All plans for a student, in file order."""
        folded = require_id(student_id, "StudentID").lower()
        return [p for p in self.read_all() if p.student_id.lower() == folded]

    def save(self, plan: RecoveryPlan) -> Path:
        """Replace the plan's block, or add it, and rewrite the ledger.

        The previous block for the same key is dropped and the fresh block is
        appended at the end of the file.

        Returns:
            Path to the plan ledger

        Raises:
            StorageError: If the ledger cannot be rewritten
        """
        key = plan.key()
        kept: list[str] = []
        for block_key, block_lines in self._blocks(ledger.read_lines(self.path)):
            if block_key == key:
                continue
            kept.extend(block_lines)

        kept.extend(serialize_plan(plan))
        ledger.write_lines(self.path, kept)

        logger.info(
            "plans.saved",
            student_id=plan.student_id,
            course_id=plan.course_id,
            milestones=len(plan.milestones),
        )
        return self.path
