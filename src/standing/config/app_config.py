"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is missing.

Usage:
    from standing.config.app_config import load_app_config

    config = load_app_config()
    grades_path = config.paths.resolve(data_dir, "grades_file")
    policy = config.eligibility.to_policy()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from standing.core.catalogue import COURSES_FILENAME, STUDENTS_FILENAME
from standing.core.eligibility import MAX_FAILED_COURSES, MIN_CGPA, EligibilityPolicy
from standing.core.grade_repository import GRADES_FILENAME
from standing.core.recovery_repository import PLANS_FILENAME
from standing.core.registration_repository import REGISTRATION_FILENAME
from standing.utils.validators import ValidationError

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")
DATA_DIR_ENV = "STANDING_DATA_DIR"
DEFAULT_DATA_DIR = Path("data")


@dataclass
class PathsConfig:
    """Ledger and catalogue file names, relative to the data directory."""

    grades_file: str = GRADES_FILENAME
    registration_file: str = REGISTRATION_FILENAME
    plans_file: str = PLANS_FILENAME
    students_csv: str = STUDENTS_FILENAME
    courses_csv: str = COURSES_FILENAME

    def resolve(self, data_dir: Path, name: str) -> Path:
        """Absolute-or-relative path of a configured file under data_dir."""
        return Path(data_dir) / getattr(self, name)


@dataclass
class EligibilityConfig:
    """Progression thresholds."""

    min_cgpa: float = MIN_CGPA
    max_failed_courses: int = MAX_FAILED_COURSES

    def to_policy(self) -> EligibilityPolicy:
        return EligibilityPolicy(
            min_cgpa=self.min_cgpa,
            max_failed_courses=self.max_failed_courses,
        )


@dataclass
class AppConfig:
    """Application-wide configuration."""

    paths: PathsConfig = field(default_factory=PathsConfig)
    eligibility: EligibilityConfig = field(default_factory=EligibilityConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "paths": {
            "grades_file": GRADES_FILENAME,
            "registration_file": REGISTRATION_FILENAME,
            "plans_file": PLANS_FILENAME,
            "students_csv": STUDENTS_FILENAME,
            "courses_csv": COURSES_FILENAME,
        },
        "eligibility": {
            "min_cgpa": MIN_CGPA,
            "max_failed_courses": MAX_FAILED_COURSES,
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object.

    Raises:
        ValidationError: If a section is not a mapping or a threshold is
            not a number
    """
    defaults = _get_defaults()
    for section in ("paths", "eligibility"):
        if not isinstance(data.get(section) or {}, dict):
            raise ValidationError(f"Config section '{section}' must be a mapping")

    paths_data = {**defaults["paths"], **(data.get("paths") or {})}
    paths = PathsConfig(**{k: str(v) for k, v in paths_data.items() if k in defaults["paths"]})

    elig_data = {**defaults["eligibility"], **(data.get("eligibility") or {})}
    try:
        eligibility = EligibilityConfig(
            min_cgpa=float(elig_data["min_cgpa"]),
            max_failed_courses=int(elig_data["max_failed_courses"]),
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid eligibility thresholds: {e}") from e

    return AppConfig(paths=paths, eligibility=eligibility)


def load_app_config(force_reload: bool = False, config_file: Path | None = None) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        config_file: Alternative YAML file (bypasses the cache).

    Returns:
        AppConfig object with all settings.

    Raises:
        ValidationError: If the file is not valid YAML, is not a mapping or
            has invalid thresholds
    """
    global _cached_config

    if config_file is None and _cached_config is not None and not force_reload:
        return _cached_config

    source = config_file or CONFIG_FILE
    data: dict[str, Any]

    if source.exists():
        logger.debug("loading_app_config", source=str(source))
        try:
            data = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {source}: {e}") from e
        if not isinstance(data, dict):
            raise ValidationError(f"Config {source} must be a mapping, got {type(data).__name__}")
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    config = _parse_config(data)
    if config_file is None:
        _cached_config = config
    return config


def get_data_dir(data_dir: Path | None = None) -> Path:
    """Resolve the data directory: argument, then $STANDING_DATA_DIR, then ./data."""
    if data_dir is not None:
        return Path(data_dir)
    return Path(os.environ.get(DATA_DIR_ENV, str(DEFAULT_DATA_DIR)))


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
