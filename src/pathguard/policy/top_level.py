"""Top-level directory guard: new root directories fork the project layout."""

from __future__ import annotations

from collections.abc import Iterable

from pathguard.policy.operations import FileOperation, OperationKind


def find_new_top_level_directories(
    operations: Iterable[FileOperation],
    allowed: Iterable[str],
) -> list[str]:
    """Return top-level directories introduced by the change list.

    Added and modified files are checked on their path, renames on their
    destination.  Deletes are ignored, as are files at the repository root.
    Each offending directory is listed once, in first-seen order.
    """
    allowed_set = set(allowed)
    found: list[str] = []
    for op in operations:
        if op.is_edit:
            path = op.path
        elif op.kind is OperationKind.RENAMED and op.new_path:
            path = op.new_path
        else:
            continue
        parts = path.split("/")
        if len(parts) < 2:
            continue
        top = parts[0]
        if top not in allowed_set and top not in found:
            found.append(top)
    return found


def top_level_violation(directories: list[str]) -> str | None:
    """Format the run-level block message, or None when nothing was found."""
    if not directories:
        return None
    noun = "directories" if len(directories) > 1 else "directory"
    listing = "\n".join(f"  {d}/ (not in allowedTopLevelDirectories)" for d in directories)
    return (
        f"New top-level {noun} detected\n"
        f"{listing}\n"
        "  Reason: new top-level directories (old/, backup/, v2/ ...) fork the project layout.\n"
        "  Solution: use the existing structure, or get approval to add the directory to "
        "allowedTopLevelDirectories in project-map.json and commit both together."
    )
