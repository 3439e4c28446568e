"""Data validation helpers and error taxonomy.

ID conventions:
- student_id / course_id: free-form catalogue codes, stored stripped
- Comparisons between IDs are case-insensitive everywhere

Functions:
- clean(value) -> str: Strip a possibly-None value
- require_id(value, field) -> str: Cleaned non-empty ID or ValidationError
- require_text(value, field) -> str: Cleaned non-empty free text or ValidationError
- same_id(a, b) -> bool: Case-insensitive ID comparison
- sanitize_field(value) -> str: Make free text safe for a pipe-delimited ledger
"""


UNSAFE_FIELD_CHARS = ("|", "\r", "\n")


class StandingError(Exception):
    """Base class for all academic-standing errors."""


class ValidationError(StandingError):
    """Raised when input is malformed. Always raised before any write."""


class NotFoundError(StandingError):
    """Raised when an action targets an unknown student or course."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"Unknown {kind} '{entity_id}'")


class StorageError(StandingError):
    """Raised when a ledger cannot be written."""


class PermissionDeniedError(StandingError):
    """Raised when an operator lacks a required capability."""


def clean(value: str | None) -> str:
    """Return value stripped of surrounding whitespace ('' for None)."""
    return "" if value is None else str(value).strip()


def require_text(value: str | None, field: str) -> str:
    """Clean free text and ensure it is non-empty.

    Raises:
        ValidationError: If the text is empty
    """
    cleaned = clean(value)
    if not cleaned:
        raise ValidationError(f"{field} cannot be empty")
    return cleaned


def require_id(value: str | None, field: str) -> str:
    """Clean an identifier and ensure it can be stored in a ledger field.

    Args:
        value: Raw identifier
        field: Field name used in the error message

    Returns:
        The stripped identifier

    Raises:
        ValidationError: If the identifier is empty or contains the ledger
            delimiter or a line break
    """
    cleaned = require_text(value, field)
    if any(ch in cleaned for ch in UNSAFE_FIELD_CHARS):
        raise ValidationError(f"{field} cannot contain '|' or line breaks: {cleaned!r}")
    return cleaned


def same_id(a: str, b: str) -> bool:
    """Compare two IDs case-insensitively."""
    return clean(a).lower() == clean(b).lower()


def sanitize_field(value: str | None) -> str:
    """Replace delimiter and line-break characters with spaces."""
    text = clean(value)
    for ch in UNSAFE_FIELD_CHARS:
        text = text.replace(ch, " ")
    return text.strip()
