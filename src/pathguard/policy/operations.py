"""Operation classifier: normalize ``git diff --name-status`` records.

The CI change-list file is read with :func:`parse_name_status`; the local
front-end reads the NUL-separated staged diff with :func:`parse_name_status_z`.
Both go through :func:`classify`, so they produce identical operations.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass

from pathguard.errors import ConfigurationError
from pathguard.policy.matcher import normalize_path


class OperationKind(enum.Enum):
    """Canonical kind of a file change."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class FileOperation:
    """A single changed file.  ``new_path`` is set for renames only."""

    kind: OperationKind
    path: str
    new_path: str | None = None

    @property
    def is_edit(self) -> bool:
        """True for added and modified files."""
        return self.kind in (OperationKind.ADDED, OperationKind.MODIFIED)

    @property
    def paths(self) -> tuple[str, ...]:
        if self.new_path is not None:
            return (self.path, self.new_path)
        return (self.path,)

    def describe(self) -> str:
        if self.kind is OperationKind.RENAMED:
            return f"{self.path} → {self.new_path}"
        return self.path


_SIMPLE_STATUSES: dict[str, OperationKind] = {
    "A": OperationKind.ADDED,
    "M": OperationKind.MODIFIED,
    "T": OperationKind.MODIFIED,  # type change (e.g. file <-> symlink)
    "D": OperationKind.DELETED,
}
_SCORED_STATUS_RE = re.compile(r"([RC])(\d{0,3})", re.ASCII)


def classify(status: str, paths: list[str]) -> FileOperation:
    """Turn one status code and its path fields into a :class:`FileOperation`.

    Raises ``ValueError`` for unknown status codes or a wrong number of paths.
    """
    if any(not p.strip() for p in paths):
        msg = f"empty path for status '{status}'"
        raise ValueError(msg)

    kind = _SIMPLE_STATUSES.get(status)
    if kind is not None:
        if len(paths) != 1:
            msg = f"status '{status}' expects 1 path, got {len(paths)}"
            raise ValueError(msg)
        return FileOperation(kind=kind, path=normalize_path(paths[0]))

    scored = _SCORED_STATUS_RE.fullmatch(status)
    if scored is None:
        msg = f"unknown status code '{status}'"
        raise ValueError(msg)

    if len(paths) != 2:
        msg = f"status '{status}' expects 2 paths, got {len(paths)}"
        raise ValueError(msg)

    score = scored.group(2)
    if score and int(score) > 100:
        msg = f"similarity score out of range in '{status}'"
        raise ValueError(msg)

    old_path, new_path = (normalize_path(p) for p in paths)
    if scored.group(1) == "C":
        # A copy leaves the source untouched; only the destination is new.
        return FileOperation(kind=OperationKind.ADDED, path=new_path)
    return FileOperation(kind=OperationKind.RENAMED, path=old_path, new_path=new_path)


def parse_name_status(text: str, *, source: str = "change list") -> list[FileOperation]:
    """Parse ``STATUS<TAB>path`` / ``R<score><TAB>old<TAB>new`` lines.

    Blank lines are skipped.

    Raises
    ------
    ConfigurationError
        When any line is malformed; the message names *source* and the line.
    """
    operations: list[FileOperation] = []
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.rstrip("\r")
        if not line.strip():
            continue

        status, *paths = line.split("\t")
        if not paths:
            msg = f"{source}, line {lineno}: expected STATUS<TAB>path, got {line!r}"
            raise ConfigurationError(msg)

        try:
            operations.append(classify(status.strip(), paths))
        except ValueError as exc:
            msg = f"{source}, line {lineno}: {exc}"
            raise ConfigurationError(msg) from exc

    return operations


def parse_name_status_z(text: str, *, source: str = "change list") -> list[FileOperation]:
    """Parse ``git diff --name-status -z`` output.

    Fields are NUL-terminated and paths are never quoted: ``STATUS\\0path\\0``
    or ``R<score>\\0old\\0new\\0``.

    Raises
    ------
    ConfigurationError
        When the field sequence is malformed; the message names *source* and
        the 1-based entry number.
    """
    fields = text.split("\0")
    if fields and fields[-1] == "":
        fields.pop()

    operations: list[FileOperation] = []
    pos = 0
    entry = 0
    while pos < len(fields):
        entry += 1
        status = fields[pos].strip()
        count = 2 if status[:1] in ("R", "C") else 1
        paths = fields[pos + 1 : pos + 1 + count]
        if len(paths) != count:
            msg = f"{source}, entry {entry}: status '{status}' is missing its path field(s)"
            raise ConfigurationError(msg)

        try:
            operations.append(classify(status, paths))
        except ValueError as exc:
            msg = f"{source}, entry {entry}: {exc}"
            raise ConfigurationError(msg) from exc
        pos += 1 + count

    return operations
