"""Rule store: load ``project-map.json`` into typed protection rules."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from pathguard.errors import ConfigurationError
from pathguard.integrity.schema import (
    PROJECT_MAP_FILENAME,
    read_project_map_document,
    validate_project_map,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


class DangerLevel(enum.Enum):
    """Ordinal risk classification attached to a rule."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ProtectionRule:
    """Protection settings attached to one path pattern."""

    pattern: str
    role: str
    danger: DangerLevel
    edit_allowed_direct: bool
    allow_delete: bool
    allow_rename: bool
    requires_approval: bool
    notes: str
    must_run_validators: frozenset[str] = frozenset()

    @property
    def is_critical(self) -> bool:
        return self.danger is DangerLevel.CRITICAL


@dataclass(frozen=True)
class ProjectMap:
    """The whole rule store.  Rules keep their declaration order."""

    version: str
    last_reviewed: date
    allowed_top_level_directories: frozenset[str]
    rules: tuple[ProtectionRule, ...]

    def get_rule(self, pattern: str) -> ProtectionRule | None:
        """Return the rule declared for *pattern* exactly, or None."""
        for rule in self.rules:
            if rule.pattern == pattern:
                return rule
        return None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_rule(pattern: str, data: dict[str, object]) -> ProtectionRule:
    validators_raw = data.get("mustRunValidators", [])
    validators: list[str] = list(validators_raw) if isinstance(validators_raw, list) else []
    return ProtectionRule(
        pattern=pattern,
        role=str(data["role"]),
        danger=DangerLevel(data["danger"]),
        edit_allowed_direct=bool(data["editAllowedDirect"]),
        allow_delete=bool(data["allowDelete"]),
        allow_rename=bool(data["allowRename"]),
        requires_approval=bool(data["requiresApproval"]),
        notes=str(data["notes"]),
        must_run_validators=frozenset(validators),
    )


def parse_project_map(data: object) -> ProjectMap:
    """Build a :class:`ProjectMap` from an already-parsed JSON document.

    Raises ``ValueError`` listing every schema error when the document is
    not structurally valid.
    """
    errors = validate_project_map(data)
    if errors:
        msg = f"{len(errors)} schema error(s): " + "; ".join(errors)
        raise ValueError(msg)

    assert isinstance(data, dict)
    paths = data["paths"]
    assert isinstance(paths, dict)

    rules = tuple(_parse_rule(pattern, rule_data) for pattern, rule_data in paths.items())
    return ProjectMap(
        version=str(data["version"]),
        last_reviewed=date.fromisoformat(str(data["lastReviewed"])),
        allowed_top_level_directories=frozenset(data["allowedTopLevelDirectories"]),
        rules=rules,
    )


def load_project_map(project_root: Path) -> ProjectMap:
    """Load and validate ``project-map.json`` from *project_root*.

    The document is read fresh on every call and never written back.

    Raises
    ------
    ConfigurationError
        When the file is missing, unparsable, or fails schema validation.
    """
    map_path = project_root / PROJECT_MAP_FILENAME
    if not map_path.is_file():
        msg = f"{PROJECT_MAP_FILENAME} not found at {map_path}; file protection is not configured"
        raise ConfigurationError(msg)

    try:
        data = read_project_map_document(map_path)
        project_map = parse_project_map(data)
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Failed to read {PROJECT_MAP_FILENAME}: {exc}"
        raise ConfigurationError(msg) from exc
    except ValueError as exc:
        msg = f"Invalid {PROJECT_MAP_FILENAME}: {exc}"
        raise ConfigurationError(msg) from exc

    logger.debug(
        "Loaded %s version %s with %d rule(s)",
        PROJECT_MAP_FILENAME,
        project_map.version,
        len(project_map.rules),
    )
    return project_map
