"""Core business logic.

Modules:
- grade_repository: Grade attempts ledger and latest-attempt resolution
- eligibility: CGPA and progression decision (pure)
- registration_repository: One-way registration gated on eligibility
- recovery_plan: Milestone checklists and progress
- recovery_repository: Block-structured plan ledger
- catalogue: Read-only student and course directories
- access: Operator roles and capabilities
- progression: Service wiring the above together
- ledger: Shared pipe-delimited file I/O
"""

__all__ = [
    "access",
    "catalogue",
    "eligibility",
    "grade_repository",
    "ledger",
    "progression",
    "recovery_plan",
    "recovery_repository",
    "registration_repository",
]
