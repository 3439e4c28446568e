"""Operator roles and capability checks.

Roles are a closed set on a single Operator record. Each role maps to the
capabilities it grants; callers check capabilities, never roles.

Authentication and session handling live outside this package: the
composition root builds an Operator and passes it in.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from standing.utils.validators import PermissionDeniedError, ValidationError, require_id


class Role(str, Enum):
    """Operator role."""

    ADMIN = "ADMIN"
    OFFICER = "OFFICER"


class Capability(str, Enum):
    """Actions guarded by role."""

    RECORD_GRADES = "record_grades"
    REGISTER_STUDENTS = "register_students"
    MANAGE_RECOVERY_PLANS = "manage_recovery_plans"
    MANAGE_USERS = "manage_users"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(Capability),
    Role.OFFICER: frozenset(
        {
            Capability.RECORD_GRADES,
            Capability.REGISTER_STUDENTS,
            Capability.MANAGE_RECOVERY_PLANS,
        }
    ),
}


def parse_role(value: Role | str) -> Role:
    """Parse a role name case-insensitively.

    Raises:
        ValidationError: If the name is not a known role
    """
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown role '{value}'") from None


@dataclass(frozen=True)
class Operator:
    """The person acting on the records."""

    username: str
    role: Role = Role.OFFICER
    active: bool = True

    def __post_init__(self):
        object.__setattr__(self, "username", require_id(self.username, "Username"))
        object.__setattr__(self, "role", parse_role(self.role))

    def can(self, capability: Capability) -> bool:
        """True if the operator is active and the role grants capability."""
        return self.active and capability in ROLE_CAPABILITIES[self.role]

    def require(self, capability: Capability) -> None:
        """Raise PermissionDeniedError unless can(capability)."""
        if not self.can(capability):
            state = "" if self.active else "inactive "
            raise PermissionDeniedError(
                f"{state}{self.role.value} '{self.username}' cannot {capability.value}"
            )


SYSTEM_OPERATOR = Operator(username="system", role=Role.ADMIN)
