"""Policy engine: decide one file operation against its matched rule.

:func:`evaluate` performs no I/O and reads no global state.  Branch protection
is supplied by the caller (see :mod:`pathguard.policy.branch`).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import PurePosixPath

from pathguard.policy.operations import FileOperation, OperationKind
from pathguard.policy.rule_store import ProtectionRule


class Decision(enum.Enum):
    """Outcome for a single operation."""

    ALLOW = "allow"
    BLOCK = "block"
    WARN = "allow-with-warning"


@dataclass(frozen=True)
class EvaluationResult:
    """Decision for one operation plus the messages explaining it."""

    operation: FileOperation
    decision: Decision
    matched_rule: ProtectionRule | None = None
    messages: tuple[str, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.decision is Decision.BLOCK


def _rule_details(rule: ProtectionRule) -> str:
    return (
        f"  Matched rule: {rule.pattern}\n"
        f"  Danger level: {rule.danger.value}\n"
        f"  Reason: {rule.notes}"
    )


def _suggested_branch(path: str) -> str:
    return f"feature/update-{PurePosixPath(path).stem}"


def evaluate(
    op: FileOperation,
    rule: ProtectionRule | None,
    branch_is_protected: bool,
    *,
    branch: str | None = None,
) -> EvaluationResult:
    """Evaluate *op* against *rule*.

    Checks, in order: protected delete, protected rename, direct edit on a
    protected branch, approval requirement.  An operation with no matching
    rule is allowed with a notice.  *branch* only appears in messages.
    """
    if rule is None:
        return EvaluationResult(
            operation=op,
            decision=Decision.ALLOW,
            messages=(f"No protection rule found for {op.path}",),
        )

    if op.kind is OperationKind.DELETED and not rule.allow_delete:
        return EvaluationResult(
            operation=op,
            decision=Decision.BLOCK,
            matched_rule=rule,
            messages=(
                f"Cannot delete {op.path}\n"
                f"{_rule_details(rule)}\n"
                "  Solution: this file is protected from deletion.",
            ),
        )

    if op.kind is OperationKind.RENAMED and not rule.allow_rename:
        return EvaluationResult(
            operation=op,
            decision=Decision.BLOCK,
            matched_rule=rule,
            messages=(
                f"Cannot rename {op.path} to {op.new_path}\n"
                f"{_rule_details(rule)}\n"
                "  Solution: this file is protected from renaming.",
            ),
        )

    if op.is_edit:
        if not rule.edit_allowed_direct and branch_is_protected:
            where = f"{branch} branch" if branch else "a protected branch"
            return EvaluationResult(
                operation=op,
                decision=Decision.BLOCK,
                matched_rule=rule,
                messages=(
                    f"Cannot edit {op.path} directly on {where}\n"
                    f"{_rule_details(rule)}\n"
                    f"  Solution: create a branch: git checkout -b {_suggested_branch(op.path)}",
                ),
            )
        if rule.requires_approval:
            return EvaluationResult(
                operation=op,
                decision=Decision.WARN,
                matched_rule=rule,
                messages=(
                    f"Approval required: {op.path}\n"
                    f"  Matched rule: {rule.pattern}\n"
                    f"  Danger level: {rule.danger.value}\n"
                    f"  Note: {rule.notes}\n"
                    "  This change will require code owner approval.",
                ),
            )

    return EvaluationResult(operation=op, decision=Decision.ALLOW, matched_rule=rule)
