"""Branch policy: protected branches and the stricter check for critical changes."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

PROTECTED_BRANCHES: frozenset[str] = frozenset({"main", "master"})
PROTECTED_BRANCH_PREFIXES: tuple[str, ...] = ("release/",)
APPROVED_BRANCH_PREFIXES: tuple[str, ...] = (
    "feature/",
    "safety/",
    "fix/",
    "refactor/",
    "docs/",
)


def is_protected_branch(branch: str) -> bool:
    """Return True for ``main``, ``master`` and any ``release/...`` branch."""
    return branch in PROTECTED_BRANCHES or branch.startswith(PROTECTED_BRANCH_PREFIXES)


def has_approved_prefix(branch: str) -> bool:
    return branch.startswith(APPROVED_BRANCH_PREFIXES)


PROTECTED_BRANCH_CHECK = "protected-branch"
BRANCH_PREFIX_CHECK = "branch-prefix"


@dataclass(frozen=True)
class BranchViolation:
    """One failed critical-branch requirement."""

    check: str
    message: str


def check_critical_branch(branch: str, critical_paths: Sequence[str]) -> list[BranchViolation]:
    """Check the branch a run with danger=critical changes is committed on.

    Two independent requirements apply once *critical_paths* is non-empty:
    the branch must not be protected (isolation) and its name must start
    with an approved prefix (traceability).  Each failure yields its own
    run-level violation; an empty list means the run passes.
    """
    if not critical_paths:
        return []

    touched = ", ".join(critical_paths)
    violations: list[BranchViolation] = []

    if is_protected_branch(branch):
        message = (
            f"Cannot commit critical changes on protected branch {branch}\n"
            f"  Critical files: {touched}\n"
            "  Reason: changes to danger:critical files must happen on an isolated branch.\n"
            "  Solution: git checkout -b feature/<description> (or safety/<description>)"
        )
        violations.append(BranchViolation(PROTECTED_BRANCH_CHECK, message))

    if not has_approved_prefix(branch):
        message = (
            f"Invalid branch name for critical changes: {branch}\n"
            f"  Critical files: {touched}\n"
            "  Reason: critical changes require a descriptive branch name for the audit trail.\n"
            f"  Valid prefixes: {', '.join(APPROVED_BRANCH_PREFIXES)}\n"
            "  Example: git checkout -b feature/update-localization"
        )
        violations.append(BranchViolation(BRANCH_PREFIX_CHECK, message))

    return violations
