"""pathguard CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

from pathguard import __version__

if TYPE_CHECKING:
    from pathguard.infrastructure.config import GuardConfig
    from pathguard.policy.checker import CheckReport

_FORMATS = ["rich", "json", "porcelain"]


@click.group()
@click.version_option(version=__version__, prog_name="pathguard")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """pathguard - file/path protection policy engine."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _emit_report(report: CheckReport, fmt: str, *, ci: bool, config: GuardConfig) -> None:
    from rich.console import Console

    from pathguard.policy.checker import format_json, format_porcelain, render_report

    if fmt == "json":
        click.echo(format_json(report))
    elif fmt == "porcelain":
        output = format_porcelain(report)
        if output:
            click.echo(output)
    else:
        render_report(
            report,
            Console(soft_wrap=True),
            ci=ci,
            validator_runner=config.validator_runner,
        )


# ---------------------------------------------------------------------------
# Front-ends
# ---------------------------------------------------------------------------


@main.command("pre-commit")
@click.option(
    "--bypass",
    is_flag=True,
    envvar="PATHGUARD_BYPASS",
    help="Commit despite violations. Always recorded in the override log.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(_FORMATS),
    default="rich",
    help="Output format.",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def pre_commit(*, bypass: bool, fmt: str, project: Path | None) -> None:
    """Check staged changes against project-map.json.

    Exit codes: 0 = allowed (or bypassed), 1 = blocked, 2 = configuration error.
    """
    from pathguard.errors import ConfigurationError
    from pathguard.infrastructure.config import load_config
    from pathguard.infrastructure.git import committer_identity, current_branch, staged_changes
    from pathguard.integrity.audit import append_override
    from pathguard.policy.checker import run_check
    from pathguard.policy.rule_store import load_project_map

    project_root = project or Path.cwd()
    config = load_config(project_root)

    try:
        project_map = load_project_map(project_root)
        operations = staged_changes(project_root)
        branch = current_branch(project_root)
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if not operations:
        click.echo("No staged files to check.")
        return

    report = run_check(project_map, operations, branch)
    _emit_report(report, fmt, ci=False, config=config)

    if bypass:
        files = sorted({path for op in operations for path in op.paths})
        log_path = config.resolve_override_log(project_root)
        try:
            append_override(log_path, committer_identity(project_root), files)
        except OSError as exc:
            click.echo(f"Error: could not record bypass in {log_path}: {exc}", err=True)
            sys.exit(2)
        status = "violations bypassed" if report.blocked else "no violations"
        click.echo(f"Bypass recorded in {log_path} ({status}).", err=True)
        return

    if report.blocked:
        sys.exit(report.exit_code)


@main.command("ci-check")
@click.argument("changes_file", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--branch",
    envvar=["PATHGUARD_BRANCH", "GITHUB_HEAD_REF", "GITHUB_REF_NAME"],
    default="unknown",
    show_default=True,
    help="Branch under check (env: PATHGUARD_BRANCH, GITHUB_HEAD_REF, GITHUB_REF_NAME).",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(_FORMATS),
    default="rich",
    help="Output format.",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def ci_check(*, changes_file: Path, branch: str, fmt: str, project: Path | None) -> None:
    """Re-check a precomputed change list on the server side.

    CHANGES_FILE holds ``git diff --name-status`` output.  There is no
    bypass: this check exists to catch commits that skipped the local hook.
    Exit codes: 0 = allowed, 1 = violations, 2 = configuration error.
    """
    from pathguard.errors import ConfigurationError
    from pathguard.infrastructure.config import load_config
    from pathguard.policy.checker import run_check
    from pathguard.policy.operations import parse_name_status
    from pathguard.policy.rule_store import load_project_map

    project_root = project or Path.cwd()
    config = load_config(project_root)

    try:
        project_map = load_project_map(project_root)
        try:
            text = changes_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Changed files list not readable: {changes_file} ({exc})"
            raise ConfigurationError(msg) from exc
        operations = parse_name_status(text, source=str(changes_file))
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if not operations:
        click.echo("No files changed.")
        return

    report = run_check(project_map, operations, branch)
    _emit_report(report, fmt, ci=True, config=config)

    if report.blocked:
        sys.exit(report.exit_code)


# ---------------------------------------------------------------------------
# Self-protection
# ---------------------------------------------------------------------------


@main.command("validate-map")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def validate_map(*, project: Path | None) -> None:
    """Validate the structure of project-map.json.

    Exit codes: 0 = valid, 2 = missing, unparsable or schema errors.
    """
    from pathguard.integrity.schema import (
        PROJECT_MAP_FILENAME,
        read_project_map_document,
        validate_project_map,
    )

    project_root = project or Path.cwd()
    map_path = project_root / PROJECT_MAP_FILENAME

    if not map_path.is_file():
        click.echo(f"Error: {PROJECT_MAP_FILENAME} not found at {map_path}", err=True)
        sys.exit(2)

    try:
        data = read_project_map_document(map_path)
    except (OSError, ValueError) as exc:
        click.echo(f"Error: failed to parse {PROJECT_MAP_FILENAME}: {exc}", err=True)
        sys.exit(2)

    errors = validate_project_map(data)
    if errors:
        click.echo(f"Schema validation failed with {len(errors)} error(s):", err=True)
        for idx, error in enumerate(errors, start=1):
            click.echo(f"  {idx}. {error}", err=True)
        click.echo(
            f"Fix these errors: an invalid {PROJECT_MAP_FILENAME} can silently disable "
            "protection rules.",
            err=True,
        )
        sys.exit(2)

    assert isinstance(data, dict)
    click.echo(f"  [ok] Version: {data['version']}")
    click.echo(f"  [ok] Last reviewed: {data['lastReviewed']}")
    click.echo(f"  [ok] Paths defined: {len(data['paths'])}")
    click.echo(f"  [ok] Allowed top-level directories: {len(data['allowedTopLevelDirectories'])}")
    click.echo(f"{PROJECT_MAP_FILENAME} is structurally valid.")


@main.command("verify-integrity")
@click.option("--generate", is_flag=True, help="Write a fresh checksum baseline.")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def verify_integrity(*, generate: bool, project: Path | None) -> None:
    """Verify (or regenerate) checksums of the protection system's own files.

    Exit codes: 0 = verified or baseline written, 1 = tampering detected,
    2 = unreadable checksum record.
    """
    from pathguard.errors import ConfigurationError
    from pathguard.infrastructure.config import load_config
    from pathguard.integrity.checksums import (
        PROTECTED_FILES,
        FileStatus,
        generate_checksums,
        verify_checksums,
    )

    project_root = project or Path.cwd()
    checksums_path = load_config(project_root).resolve_checksums_path(project_root)

    if generate:
        record = generate_checksums(project_root, checksums_path)
        for rel_path in PROTECTED_FILES:
            digest = record.checksums.get(rel_path)
            if digest is None:
                click.echo(f"  [skip] {rel_path}: file not found")
            else:
                click.echo(f"  [ok] {rel_path}: {digest[:12]}...")
        click.echo(f"Generated {len(record.checksums)} checksum(s) in {checksums_path}")
        click.echo("Commit the checksum file to version control.")
        return

    try:
        report = verify_checksums(project_root, checksums_path)
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    if report.first_run:
        click.echo(
            f"No stored checksums found; generated {len(report.files)} in {checksums_path}."
        )
        click.echo("Run this command again to verify against the new baseline.")
        return

    labels = {
        FileStatus.OK: "[ok]",
        FileStatus.MODIFIED: "[MODIFIED]",
        FileStatus.MISSING: "[MISSING]",
        FileStatus.UNTRACKED: "[warn]",
        FileStatus.ABSENT: "[info]",
    }
    for check in report.files:
        note = ""
        if check.status is FileStatus.UNTRACKED:
            note = " (no stored checksum, new file?)"
        elif check.status is FileStatus.ABSENT:
            note = " (not found, not recorded)"
        click.echo(f"  {labels[check.status]} {check.path}{note}")

    if report.tampered:
        click.echo("TAMPERING DETECTED", err=True)
        for check in report.modified:
            click.echo(f"  modified: {check.path}", err=True)
            click.echo(f"    stored:  {check.stored_prefix}...", err=True)
            click.echo(f"    current: {check.current_prefix}...", err=True)
        for check in report.missing:
            click.echo(f"  missing: {check.path}", err=True)
        click.echo(
            "If the change is legitimate, regenerate the baseline: "
            "pathguard verify-integrity --generate",
            err=True,
        )
        sys.exit(1)

    click.echo(f"All {report.verified_count} protection files verified.")
    click.echo(f"Last checksum update: {report.last_updated}")


# ---------------------------------------------------------------------------
# Hooks and audit
# ---------------------------------------------------------------------------


_HOOK_MARKER = "# pre-commit hook managed by pathguard"

_HOOK_TEMPLATE = f"""\
#!/bin/sh
{_HOOK_MARKER}
# Bypass (always logged): PATHGUARD_BYPASS=1 git commit
cd "$(git rev-parse --show-toplevel)" || exit 2
exec pathguard pre-commit
"""


@main.command("install-hooks")
@click.option("--remove", is_flag=True, help="Remove the pre-commit hook.")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def install_hooks(*, remove: bool, project: Path | None) -> None:
    """Install or remove the pathguard pre-commit hook."""
    import stat
    from datetime import datetime

    project_root = project or Path.cwd()
    git_dir = project_root / ".git"

    if not git_dir.is_dir():
        click.echo("Error: .git not found. Is this a git repository?", err=True)
        sys.exit(2)

    hooks_dir = git_dir / "hooks"
    hook_path = hooks_dir / "pre-commit"
    ours = hook_path.exists() and _HOOK_MARKER in hook_path.read_text(errors="replace")

    if remove:
        if not hook_path.exists():
            click.echo("No pre-commit hook to remove.")
        elif not ours:
            click.echo("Error: existing pre-commit hook is not managed by pathguard.", err=True)
            sys.exit(2)
        else:
            hook_path.unlink()
            click.echo("Removed pre-commit hook.")
        return

    hooks_dir.mkdir(parents=True, exist_ok=True)
    if hook_path.exists() and not ours:
        backup = hook_path.with_name(f"pre-commit.backup-{datetime.now():%Y%m%d%H%M%S}")
        hook_path.rename(backup)
        click.echo(f"Backed up existing pre-commit hook to {backup.name}.")

    hook_path.write_text(_HOOK_TEMPLATE)
    hook_path.chmod(hook_path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    click.echo("Updated pre-commit hook." if ours else "Installed pre-commit hook.")


@main.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def overrides(*, output_json: bool, project: Path | None) -> None:
    """List recorded protection bypasses."""
    from pathguard.infrastructure.config import load_config
    from pathguard.integrity.audit import read_override_log

    project_root = project or Path.cwd()
    entries = read_override_log(load_config(project_root).resolve_override_log(project_root))

    if output_json:
        data = [
            {
                "timestamp": e.timestamp,
                "actor": e.actor,
                "action": e.action,
                "affected_files": list(e.affected_files),
            }
            for e in entries
        ]
        click.echo(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not entries:
        click.echo("No bypasses recorded.")
        return

    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    table = Table(title="Protection bypasses")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Actor")
    table.add_column("Files", justify="right")
    for e in entries:
        table.add_row(e.timestamp, escape(e.actor), str(len(e.affected_files)))
    Console().print(table)
