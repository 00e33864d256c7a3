"""Check orchestrator: evaluate a whole run and format the aggregated report.

Both front-ends gather ``(project_map, operations, branch)`` themselves and
hand them to :func:`run_check`; nothing in here touches git or the working
directory.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.markup import escape

from pathguard.policy.advisor import collect_required_validators, format_validator_reminder
from pathguard.policy.branch import BranchViolation, check_critical_branch, is_protected_branch
from pathguard.policy.engine import Decision, EvaluationResult, evaluate
from pathguard.policy.matcher import match_rule
from pathguard.policy.top_level import find_new_top_level_directories, top_level_violation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rich.console import Console

    from pathguard.policy.operations import FileOperation
    from pathguard.policy.rule_store import ProjectMap


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class CheckReport:
    """Aggregated result of one protection check run."""

    branch: str
    project_map_version: str
    results: list[EvaluationResult] = field(default_factory=list)
    branch_violations: list[BranchViolation] = field(default_factory=list)
    new_top_level_directories: list[str] = field(default_factory=list)
    required_validators: frozenset[str] = frozenset()
    elapsed_ms: float = 0.0

    @property
    def violations(self) -> list[str]:
        """Every blocking message: run-level checks first, then per-file."""
        messages: list[str] = []
        top_level = top_level_violation(self.new_top_level_directories)
        if top_level is not None:
            messages.append(top_level)
        messages.extend(v.message for v in self.branch_violations)
        for result in self.results:
            if result.blocked:
                messages.extend(result.messages)
        return messages

    @property
    def warnings(self) -> list[str]:
        """Non-blocking messages: approvals required and unmatched paths."""
        messages: list[str] = []
        for result in self.results:
            if not result.blocked:
                messages.extend(result.messages)
        return messages

    @property
    def approvals_required(self) -> int:
        return sum(1 for r in self.results if r.decision is Decision.WARN)

    @property
    def blocked(self) -> bool:
        return bool(self.violations)

    @property
    def exit_code(self) -> int:
        return 1 if self.blocked else 0


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run_check(
    project_map: ProjectMap,
    operations: Sequence[FileOperation],
    branch: str,
) -> CheckReport:
    """Evaluate every operation of a run against *project_map* on *branch*.

    Deterministic: the same inputs always give the same decisions and
    messages (only ``elapsed_ms`` varies).
    """
    start = time.monotonic()
    protected = is_protected_branch(branch)

    results: list[EvaluationResult] = []
    critical_paths: list[str] = []
    for op in operations:
        rule = match_rule(op.path, project_map.rules)
        if rule is not None and rule.is_critical:
            critical_paths.append(op.path)
        results.append(evaluate(op, rule, protected, branch=branch))

    new_dirs = find_new_top_level_directories(
        operations, project_map.allowed_top_level_directories
    )

    elapsed = (time.monotonic() - start) * 1000
    return CheckReport(
        branch=branch,
        project_map_version=project_map.version,
        results=results,
        branch_violations=check_critical_branch(branch, critical_paths),
        new_top_level_directories=new_dirs,
        required_validators=collect_required_validators(results),
        elapsed_ms=elapsed,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def render_report(
    report: CheckReport,
    console: Console,
    *,
    ci: bool = False,
    validator_runner: str = "npm run",
) -> None:
    """Render a CheckReport on a Rich console.

    With *ci* set, violations are presented as escaped local checks: the CI
    run only sees changes that got past the pre-commit hook.
    """
    title = "CI File Protection Check" if ci else "File Protection Check"
    console.print(f"[bold cyan]{title}[/] (project-map.json version {report.project_map_version})")
    console.print(f"Branch: [cyan]{escape(report.branch)}[/]")
    console.print(f"Checking {len(report.results)} changed file(s)...")
    console.print()

    warnings = report.warnings
    reminder = format_validator_reminder(report.required_validators, runner=validator_runner)
    if warnings or reminder:
        console.print("[bold yellow]Warnings:[/]")
        for warning in warnings:
            console.print(f"[yellow]![/] {escape(warning)}")
        if reminder:
            console.print(f"[yellow]![/] {escape(reminder)}")
        console.print()

    violations = report.violations
    if violations:
        console.print("[bold red]Protection violations:[/]")
        for idx, violation in enumerate(violations, start=1):
            console.print(f"[red]{idx}.[/] {escape(violation)}")
            console.print()
        if ci:
            console.print(
                "[yellow]These violations should have been caught by the pre-commit hook. "
                "Possible bypass detected.[/]"
            )
            console.print("[bold red]CI CHECK FAILED[/]")
        else:
            console.print(f"[bold red]COMMIT BLOCKED[/] ({len(violations)} violation(s))")
            console.print("Options:")
            console.print("  1. Create a feature branch and commit there")
            console.print("  2. Unstage protected files: git restore --staged <file>")
            console.print("  3. Bypass (logged): PATHGUARD_BYPASS=1 git commit")
        return

    console.print("[bold green]✓ All protection checks passed[/]")
    if report.approvals_required:
        console.print(
            f"[yellow]Note:[/] {report.approvals_required} file(s) require code owner approval."
        )


def report_to_dict(report: CheckReport) -> dict[str, object]:
    """Convert a CheckReport to a JSON-serializable dict."""
    results: list[dict[str, object]] = []
    for r in report.results:
        rule = r.matched_rule
        results.append(
            {
                "kind": r.operation.kind.value,
                "path": r.operation.path,
                "new_path": r.operation.new_path,
                "decision": r.decision.value,
                "pattern": rule.pattern if rule is not None else None,
                "danger": rule.danger.value if rule is not None else None,
                "messages": list(r.messages),
            }
        )

    return {
        "branch": report.branch,
        "project_map_version": report.project_map_version,
        "blocked": report.blocked,
        "violations": report.violations,
        "warnings": report.warnings,
        "new_top_level_directories": list(report.new_top_level_directories),
        "required_validators": sorted(report.required_validators),
        "results": results,
        "summary": {
            "files_checked": len(report.results),
            "violations_count": len(report.violations),
            "approvals_required": report.approvals_required,
            "elapsed_ms": report.elapsed_ms,
        },
    }


def format_json(report: CheckReport) -> str:
    return json.dumps(report_to_dict(report), ensure_ascii=False, indent=2)


def format_porcelain(report: CheckReport) -> str:
    """Format a CheckReport as TAB-separated lines.

    Per file: ``decision<TAB>kind<TAB>path<TAB>new_path<TAB>pattern`` (``new_path``
    is empty unless renamed).  Run-level blocks:
    ``block<TAB>run<TAB>new-top-level-directory<TAB>dir``,
    ``block<TAB>run<TAB>protected-branch<TAB>branch`` and
    ``block<TAB>run<TAB>branch-prefix<TAB>branch``.  Validators:
    ``validator<TAB>name``.
    """
    lines: list[str] = []
    for directory in report.new_top_level_directories:
        lines.append(f"block\trun\tnew-top-level-directory\t{directory}")
    for violation in report.branch_violations:
        lines.append(f"block\trun\t{violation.check}\t{report.branch}")
    for r in report.results:
        pattern = r.matched_rule.pattern if r.matched_rule is not None else ""
        fields = (
            r.decision.value,
            r.operation.kind.value,
            r.operation.path,
            r.operation.new_path or "",
            pattern,
        )
        lines.append("\t".join(fields))
    for name in sorted(report.required_validators):
        lines.append(f"validator\t{name}")
    return "\n".join(lines)
