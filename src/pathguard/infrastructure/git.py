"""Git adapter for the local front-end: staged changes, branch, committer."""

from __future__ import annotations

import logging
import subprocess
from typing import TYPE_CHECKING

from pathguard.errors import ConfigurationError
from pathguard.policy.operations import parse_name_status_z

if TYPE_CHECKING:
    from pathlib import Path

    from pathguard.policy.operations import FileOperation

logger = logging.getLogger(__name__)

DETACHED_HEAD = "HEAD"


def _run_git(project_root: Path, args: list[str]) -> subprocess.CompletedProcess[str]:
    """Run git and decode its output as strict UTF-8.

    Output is read as bytes so paths keep their exact characters (no newline
    translation).  Undecodable output is a configuration error.
    """
    try:
        raw = subprocess.run(  # noqa: S603
            ["git", *args],  # noqa: S607
            cwd=str(project_root),
            capture_output=True,
            timeout=30,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired) as exc:
        msg = f"Failed to run git {' '.join(args)}: {exc}"
        raise ConfigurationError(msg) from exc

    try:
        stdout = raw.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = (
            f"git {' '.join(args)} printed a path that is not valid UTF-8 "
            f"({exc.object[exc.start : exc.end]!r}); rename the file before committing"
        )
        raise ConfigurationError(msg) from exc
    stderr = raw.stderr.decode("utf-8", errors="replace")
    return subprocess.CompletedProcess(raw.args, raw.returncode, stdout, stderr)


def staged_changes(project_root: Path) -> list[FileOperation]:
    """Return the staged change list as file operations.

    Raises
    ------
    ConfigurationError
        When git fails or prints something that is not a name-status list.
    """
    args = ["-c", "core.quotePath=false", "diff", "--cached", "--name-status", "-z", "-M"]
    result = _run_git(project_root, args)
    if result.returncode != 0:
        msg = f"Failed to get staged files: {result.stderr.strip() or 'git diff failed'}"
        raise ConfigurationError(msg)
    logger.debug("git diff --cached --name-status -z: %r", result.stdout)
    return parse_name_status_z(result.stdout, source="git diff --cached")


def current_branch(project_root: Path) -> str:
    """Return the checked-out branch name, or ``HEAD`` when detached.

    ``symbolic-ref`` also works on an unborn branch (a repository without
    commits), where ``rev-parse --abbrev-ref HEAD`` fails.
    """
    result = _run_git(project_root, ["symbolic-ref", "--short", "-q", "HEAD"])
    if result.returncode == 0 and result.stdout.strip():
        return result.stdout.strip()

    check = _run_git(project_root, ["rev-parse", "--git-dir"])
    if check.returncode != 0:
        msg = f"Not a git repository: {project_root}"
        raise ConfigurationError(msg)
    return DETACHED_HEAD


def _git_config(project_root: Path, key: str) -> str:
    result = _run_git(project_root, ["config", key])
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def committer_identity(project_root: Path) -> str:
    """Return ``Name <email>`` from git config, with ``unknown`` for gaps."""
    name = _git_config(project_root, "user.name") or "unknown"
    email = _git_config(project_root, "user.email") or "unknown"
    return f"{name} <{email}>"
