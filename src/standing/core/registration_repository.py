"""Registration repository module.

Responsibilities:
- Track one registration row per student
- Gate the one-way UNREGISTERED -> REGISTERED transition on eligibility

Ledger format (pipe-delimited, header mandatory):
    StudentID|Registered|RegisteredAt
    S001|YES|2025-01-15T10:30:00+00:00
    S002|NO|

There is no un-registration path. Like the grade ledger, every successful
registration rewrites the whole file and assumes a single writer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import structlog

from standing.core import ledger
from standing.core.eligibility import EligibilityDecision, EligibilityStatus
from standing.utils.validators import ValidationError, require_id, same_id

logger = structlog.get_logger(__name__)

HEADER = "StudentID|Registered|RegisteredAt"
REGISTRATION_FILENAME = "registration.txt"

YES = "YES"
NO = "NO"


@dataclass
class RegistrationRow:
    """Registration state of a single student."""

    student_id: str
    registered: bool
    registered_at: str = ""

    def to_line(self) -> str:
        """Serialize to a ledger line."""
        if self.registered:
            return ledger.join_fields(self.student_id, YES, self.registered_at)
        return ledger.join_fields(self.student_id, NO, "")

    @classmethod
    def from_line(cls, text: str) -> RegistrationRow:
        """Parse a ledger line.

        Raises:
            ValidationError: If the line is malformed
        """
        parts = ledger.split_line(text)
        if len(parts) < 2:
            raise ValidationError(f"Expected 3 fields, got {len(parts)}")

        student_id = require_id(parts[0], "StudentID")
        flag = parts[1].upper()
        if flag not in (YES, NO):
            raise ValidationError(f"Invalid registered flag '{parts[1]}'")

        registered = flag == YES
        registered_at = parts[2] if registered and len(parts) > 2 else ""
        return cls(student_id=student_id, registered=registered, registered_at=registered_at)


@dataclass
class RegistrationResult:
    """Outcome of a registration request."""

    success: bool
    student_id: str
    message: str
    row: RegistrationRow | None = None


class RegistrationRepository:
    """One-row-per-student registration ledger."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_all(self) -> list[RegistrationRow]:
        """All rows in file order; for repeated IDs the last row wins."""
        rows: dict[str, RegistrationRow] = {}
        lines = ledger.read_lines(self.path)
        for number, text in ledger.body_lines(lines, HEADER):
            try:
                row = RegistrationRow.from_line(text)
            except ValidationError as e:
                ledger.skip_line(self.path, number, text, str(e))
                continue
            key = row.student_id.lower()
            rows.pop(key, None)
            rows[key] = row
        return list(rows.values())

    def get(self, student_id: str) -> RegistrationRow | None:
        """Row for a student (case-insensitive), or None."""
        for row in self.read_all():
            if same_id(row.student_id, student_id):
                return row
        return None

    def is_registered(self, student_id: str) -> bool:
        """True only if the student has a row marked YES."""
        row = self.get(student_id)
        return row is not None and row.registered

    def register_if_eligible(
        self,
        student_id: str,
        decision: EligibilityDecision,
    ) -> RegistrationResult:
        """Register a student if the decision allows it.

        Args:
            student_id: Student to register
            decision: Fresh eligibility decision for the same student

        Returns:
            RegistrationResult; on failure nothing is written

        Raises:
            ValidationError: If student_id is empty or the decision belongs
                to another student
            StorageError: If the ledger cannot be rewritten
        """
        student_id = require_id(student_id, "StudentID")
        if not same_id(decision.student_id, student_id):
            raise ValidationError(
                f"Decision for '{decision.student_id}' cannot register '{student_id}'"
            )

        if decision.status is not EligibilityStatus.ELIGIBLE:
            logger.info(
                "registration.rejected",
                student_id=student_id,
                status=decision.status.value,
            )
            return RegistrationResult(
                success=False,
                student_id=student_id,
                message=decision.reason,
            )

        existing = self.get(student_id)
        if existing is not None and existing.registered:
            logger.info("registration.already_registered", student_id=student_id)
            return RegistrationResult(
                success=False,
                student_id=student_id,
                message=f"Student {student_id} is already registered "
                f"(since {existing.registered_at or 'unknown'}).",
                row=existing,
            )

        row = RegistrationRow(
            student_id=student_id,
            registered=True,
            registered_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        self._save(row)

        logger.info("registration.saved", student_id=student_id, registered_at=row.registered_at)
        return RegistrationResult(
            success=True,
            student_id=student_id,
            message=f"Student {student_id} registered for the next level.",
            row=row,
        )

    def _save(self, row: RegistrationRow) -> None:
        """Replace the student's row in place, or append it."""
        lines = ledger.with_header(ledger.read_lines(self.path), HEADER)

        kept = [lines[0]]
        replaced = False
        for raw in lines[1:]:
            text = raw.strip()
            if not text:
                continue
            student_id = ledger.split_line(text)[0]
            if same_id(student_id, row.student_id):
                if not replaced:
                    kept.append(row.to_line())
                    replaced = True
                continue
            kept.append(raw)

        if not replaced:
            kept.append(row.to_line())

        ledger.write_lines(self.path, kept)
