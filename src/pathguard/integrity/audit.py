"""Audit log of local protection bypasses.

Record format (one block per bypass, never rewritten)::

    2026-01-05T10:22:31+00:00 | Jane Doe <jane@example.com> | BYPASS
    Files: src/utils/localization.ts, project-map.json

"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

BYPASS_ACTION = "bypass"
_FILES_PREFIX = "Files: "


@dataclass(frozen=True)
class OverrideLogEntry:
    """A single recorded bypass."""

    timestamp: str
    actor: str
    action: str
    affected_files: tuple[str, ...]


def format_override_entry(entry: OverrideLogEntry) -> str:
    return (
        f"{entry.timestamp} | {entry.actor} | {entry.action.upper()}\n"
        f"{_FILES_PREFIX}{', '.join(entry.affected_files)}\n\n"
    )


def append_override(
    log_path: Path,
    actor: str,
    files: Sequence[str],
    *,
    now: datetime | None = None,
) -> OverrideLogEntry:
    """Append one bypass record to *log_path*.

    The record is written with a single ``write()`` on a file opened in
    append mode; existing content is never touched.
    """
    timestamp = (now or datetime.now(tz=timezone.utc)).isoformat(timespec="seconds")
    entry = OverrideLogEntry(
        timestamp=timestamp,
        actor=actor.replace("\n", " ").strip() or "unknown",
        action=BYPASS_ACTION,
        affected_files=tuple(files),
    )

    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as fh:
        fh.write(format_override_entry(entry))

    logger.info("Recorded bypass by %s (%d file(s)) in %s", entry.actor, len(files), log_path)
    return entry


def read_override_log(log_path: Path) -> list[OverrideLogEntry]:
    """Parse every bypass record in *log_path* (empty list if absent).

    Blocks that do not follow the record format are skipped with a warning.
    """
    if not log_path.is_file():
        return []

    entries: list[OverrideLogEntry] = []
    blocks = log_path.read_text(encoding="utf-8").split("\n\n")
    for block in blocks:
        lines = [line for line in block.splitlines() if line.strip()]
        if not lines:
            continue

        header = lines[0].split(" | ")
        if len(header) != 3 or len(lines) < 2 or not lines[1].startswith(_FILES_PREFIX):
            logger.warning("Skipping malformed override log block: %r", block[:80])
            continue

        files_text = lines[1][len(_FILES_PREFIX) :]
        files = tuple(f for f in files_text.split(", ") if f)
        entries.append(
            OverrideLogEntry(
                timestamp=header[0],
                actor=header[1],
                action=header[2].lower(),
                affected_files=files,
            )
        )

    return entries
