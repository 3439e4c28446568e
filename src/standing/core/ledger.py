"""Pipe-delimited ledger file I/O.

Responsibilities:
- Read raw ledger lines, degrading to an empty list on read failures
- Rewrite a ledger file in full (load-modify-store discipline)
- Guarantee a header line on ledgers that declare one

Every ledger in this package is a small text file rewritten as a whole on
each mutation. There is no locking: the files assume a single writer, and two
processes writing at once can silently lose one update.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from standing.utils.validators import StorageError

logger = structlog.get_logger(__name__)

DELIMITER = "|"


def read_lines(path: Path) -> list[str]:
    """Read all lines of a ledger.

    Args:
        path: Ledger file path

    Returns:
        Lines without trailing newlines (empty if missing or unreadable)
    """
    if not path.exists():
        logger.debug("ledger.not_found", path=str(path))
        return []

    try:
        with open(path, encoding="utf-8") as f:
            return f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("ledger.read_failed", path=str(path), error=str(e))
        return []


def write_lines(path: Path, lines: list[str]) -> None:
    """Rewrite a ledger with the given lines.

    Args:
        path: Ledger file path
        lines: Lines to write, without newlines

    Raises:
        StorageError: If the file cannot be written
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            for line in lines:
                f.write(line + "\n")
    except OSError as e:
        logger.error("ledger.write_failed", path=str(path), error=str(e))
        raise StorageError(f"Cannot write ledger {path}: {e}") from e


def with_header(lines: list[str], header: str) -> list[str]:
    """Return lines guaranteed to start with the header.

    A ledger whose first line is not the header gets it prepended, so
    hand-edited files are repaired on the next write.
    """
    if lines and lines[0].strip().lower() == header.lower():
        return list(lines)
    return [header, *lines]


def body_lines(lines: list[str], header: str | None = None) -> list[tuple[int, str]]:
    """Return (line_number, stripped_text) for non-blank, non-header lines."""
    result = []
    for number, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or (header and text.lower() == header.lower()):
            continue
        result.append((number, text))
    return result


def split_line(text: str) -> list[str]:
    """Split a ledger line into stripped fields."""
    return [part.strip() for part in text.split(DELIMITER)]


def join_fields(*fields: object) -> str:
    """Join fields into a ledger line."""
    return DELIMITER.join(str(f) for f in fields)


def skip_line(path: Path, number: int, text: str, reason: str) -> None:
    """Log a malformed line that is being skipped."""
    logger.warning(
        "ledger.line_skipped",
        path=str(path),
        line=number,
        content=text,
        reason=reason,
    )
