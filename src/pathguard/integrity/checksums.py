"""Integrity verifier: SHA-256 baseline of the protection system's own files.

The manifest is a fixed tuple, not derived from the rule store, so editing
``project-map.json`` can never remove a file from its own tamper check.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pathguard.errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PROTECTED_FILES: tuple[str, ...] = (
    "project-map.json",
    ".github/CODEOWNERS",
    ".pathguard/config.yml",
    "src/pathguard/cli.py",
    "src/pathguard/errors.py",
    "src/pathguard/policy/advisor.py",
    "src/pathguard/policy/branch.py",
    "src/pathguard/policy/checker.py",
    "src/pathguard/policy/engine.py",
    "src/pathguard/policy/matcher.py",
    "src/pathguard/policy/operations.py",
    "src/pathguard/policy/rule_store.py",
    "src/pathguard/policy/top_level.py",
    "src/pathguard/integrity/audit.py",
    "src/pathguard/integrity/checksums.py",
    "src/pathguard/integrity/schema.py",
    "src/pathguard/infrastructure/git.py",
)

CHECKSUM_RECORD_VERSION = "1.0.0"
HASH_PREFIX_LENGTH = 12
_CHUNK_SIZE = 65536


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class ChecksumRecord:
    """Stored baseline: manifest path -> SHA-256 hex digest."""

    checksums: dict[str, str]
    last_updated: str
    version: str = CHECKSUM_RECORD_VERSION

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "lastUpdated": self.last_updated,
            "checksums": dict(self.checksums),
        }


class FileStatus(enum.Enum):
    """Verification outcome for one manifest entry."""

    OK = "ok"
    MODIFIED = "modified"
    MISSING = "missing"  # recorded at baseline, gone now
    UNTRACKED = "untracked"  # present now, not in the baseline
    ABSENT = "absent"  # neither recorded nor present


@dataclass(frozen=True)
class FileCheck:
    path: str
    status: FileStatus
    stored_prefix: str | None = None
    current_prefix: str | None = None


@dataclass
class IntegrityReport:
    """Result of a verify run."""

    files: list[FileCheck] = field(default_factory=list)
    first_run: bool = False
    last_updated: str | None = None

    @property
    def modified(self) -> list[FileCheck]:
        return [f for f in self.files if f.status is FileStatus.MODIFIED]

    @property
    def missing(self) -> list[FileCheck]:
        return [f for f in self.files if f.status is FileStatus.MISSING]

    @property
    def verified_count(self) -> int:
        return sum(1 for f in self.files if f.status is FileStatus.OK)

    @property
    def tampered(self) -> bool:
        return bool(self.modified or self.missing)


# ---------------------------------------------------------------------------
# Hashing and storage
# ---------------------------------------------------------------------------


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file's bytes."""
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def compute_checksums(
    project_root: Path, files: tuple[str, ...] = PROTECTED_FILES
) -> dict[str, str]:
    """Hash every manifest file that exists under *project_root*."""
    checksums: dict[str, str] = {}
    for rel_path in files:
        file_path = project_root / rel_path
        if not file_path.is_file():
            logger.warning("%s: file not found (skipped)", rel_path)
            continue
        checksums[rel_path] = sha256_file(file_path)
    return checksums


def load_checksum_record(checksums_path: Path) -> ChecksumRecord | None:
    """Read the stored baseline, or return None when none exists yet.

    Raises
    ------
    ConfigurationError
        When the file exists but is unreadable or malformed.
    """
    if not checksums_path.is_file():
        return None

    try:
        data = json.loads(checksums_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        msg = f"Could not load checksums from {checksums_path}: {exc}"
        raise ConfigurationError(msg) from exc

    checksums = data.get("checksums") if isinstance(data, dict) else None
    if not isinstance(checksums, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in checksums.items()
    ):
        msg = f"Malformed checksum record {checksums_path}: 'checksums' must map paths to digests"
        raise ConfigurationError(msg)

    return ChecksumRecord(
        checksums=dict(checksums),
        last_updated=str(data.get("lastUpdated", "")),
        version=str(data.get("version", CHECKSUM_RECORD_VERSION)),
    )


def generate_checksums(
    project_root: Path,
    checksums_path: Path,
    *,
    files: tuple[str, ...] = PROTECTED_FILES,
    now: datetime | None = None,
) -> ChecksumRecord:
    """Compute a fresh baseline and overwrite *checksums_path* with it.

    This is the explicit operator action that accepts the current state of
    the protection files as legitimate.
    """
    timestamp = (now or datetime.now(tz=timezone.utc)).isoformat(timespec="seconds")
    record = ChecksumRecord(
        checksums=compute_checksums(project_root, files), last_updated=timestamp
    )

    checksums_path.parent.mkdir(parents=True, exist_ok=True)
    checksums_path.write_text(json.dumps(record.to_dict(), indent=2) + "\n", encoding="utf-8")
    logger.info("Wrote %d checksum(s) to %s", len(record.checksums), checksums_path)
    return record


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def verify_checksums(
    project_root: Path,
    checksums_path: Path,
    *,
    files: tuple[str, ...] = PROTECTED_FILES,
) -> IntegrityReport:
    """Compare the manifest files against the stored baseline.

    A modified or missing file marks the report as tampered; nothing is
    repaired.  Without a stored baseline the first run bootstraps one and
    returns ``first_run=True``.
    """
    record = load_checksum_record(checksums_path)

    if record is None:
        logger.warning("No stored checksums at %s; generating a baseline", checksums_path)
        generated = generate_checksums(project_root, checksums_path, files=files)
        return IntegrityReport(
            files=[FileCheck(path, FileStatus.OK) for path in generated.checksums],
            first_run=True,
            last_updated=generated.last_updated,
        )

    checks: list[FileCheck] = []
    for rel_path in files:
        file_path = project_root / rel_path
        stored = record.checksums.get(rel_path)

        if not file_path.is_file():
            status = FileStatus.MISSING if stored else FileStatus.ABSENT
            checks.append(FileCheck(rel_path, status))
            continue

        if stored is None:
            checks.append(FileCheck(rel_path, FileStatus.UNTRACKED))
            continue

        current = sha256_file(file_path)
        if current != stored:
            checks.append(
                FileCheck(
                    rel_path,
                    FileStatus.MODIFIED,
                    stored_prefix=stored[:HASH_PREFIX_LENGTH],
                    current_prefix=current[:HASH_PREFIX_LENGTH],
                )
            )
        else:
            checks.append(FileCheck(rel_path, FileStatus.OK))

    return IntegrityReport(files=checks, last_updated=record.last_updated)
