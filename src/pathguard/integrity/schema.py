"""Structural validation of ``project-map.json``.

A malformed rule store can silently disable protection (a typo in
``allowDelete`` reads as "field missing", which reads as "allowed").  Every
check here reports instead of guessing, and callers treat any reported error
as a configuration error.
"""

from __future__ import annotations

import json
import re
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PROJECT_MAP_FILENAME = "project-map.json"

VALID_DANGER_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")
REQUIRED_TOP_LEVEL_FIELDS: tuple[str, ...] = (
    "version",
    "lastReviewed",
    "allowedTopLevelDirectories",
    "paths",
)
OPTIONAL_TOP_LEVEL_FIELDS: frozenset[str] = frozenset({"$schema", "description"})
REQUIRED_RULE_FIELDS: tuple[str, ...] = (
    "role",
    "danger",
    "editAllowedDirect",
    "allowDelete",
    "allowRename",
    "requiresApproval",
    "notes",
)
OPTIONAL_RULE_FIELDS: frozenset[str] = frozenset({"mustRunValidators"})
BOOLEAN_RULE_FIELDS: tuple[str, ...] = (
    "editAllowedDirect",
    "allowDelete",
    "allowRename",
    "requiresApproval",
)
MIN_NOTES_LENGTH = 10

_SEMVER_RE = re.compile(r"\d+\.\d+\.\d+", re.ASCII)
_ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)
_KEBAB_CASE_RE = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*", re.ASCII)


# ---------------------------------------------------------------------------
# JSON reading
# ---------------------------------------------------------------------------


def _reject_duplicate_keys(pairs: list[tuple[str, object]]) -> dict[str, object]:
    result: dict[str, object] = {}
    for key, value in pairs:
        if key in result:
            msg = f"duplicate key '{key}'"
            raise ValueError(msg)
        result[key] = value
    return result


def parse_project_map_text(text: str) -> object:
    """Parse JSON text, refusing duplicate object keys.

    ``json.loads`` keeps the last value for a repeated key, which would let a
    second declaration of a pattern silently replace the first.

    Raises ``ValueError`` for invalid JSON or duplicate keys.
    """
    try:
        return json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except json.JSONDecodeError as exc:
        msg = f"invalid JSON: {exc}"
        raise ValueError(msg) from exc


def read_project_map_document(path: Path) -> object:
    """Read and parse a project map file.

    Raises ``FileNotFoundError`` when absent and ``ValueError`` when the
    content cannot be parsed.
    """
    text = path.read_text(encoding="utf-8")
    return parse_project_map_text(text)


# ---------------------------------------------------------------------------
# Field validators
# ---------------------------------------------------------------------------


def validate_version(version: object) -> str | None:
    """Return an error message unless *version* is ``MAJOR.MINOR.PATCH``."""
    if not isinstance(version, str) or not _SEMVER_RE.fullmatch(version):
        return f"Invalid version format: {version!r} (expected MAJOR.MINOR.PATCH, e.g. '1.0.0')"
    return None


def validate_date(value: object, field_name: str) -> str | None:
    """Return an error message unless *value* is a real ``YYYY-MM-DD`` date."""
    if not isinstance(value, str) or not _ISO_DATE_RE.fullmatch(value):
        return f"Invalid {field_name} format: {value!r} (expected YYYY-MM-DD)"
    try:
        date.fromisoformat(value)
    except ValueError:
        return f"Invalid {field_name}: {value} is not a valid date"
    return None


def validate_danger_level(danger: object, pattern: str) -> str | None:
    if danger not in VALID_DANGER_LEVELS:
        return (
            f"Invalid danger level {danger!r} for {pattern} "
            f"(must be one of: {', '.join(VALID_DANGER_LEVELS)})"
        )
    return None


def _find_duplicates(items: list[object]) -> list[object]:
    seen: list[object] = []
    duplicates: list[object] = []
    for item in items:
        if item in seen and item not in duplicates:
            duplicates.append(item)
        seen.append(item)
    return duplicates


def validate_path_rule(pattern: str, rule: object) -> list[str]:
    """Validate a single ``paths`` entry and return every problem found."""
    if not isinstance(rule, dict):
        return [f"Rule for {pattern} must be an object"]

    errors: list[str] = []

    for field_name in REQUIRED_RULE_FIELDS:
        if field_name not in rule:
            errors.append(f"Missing required field '{field_name}' in rule for {pattern}")

    known = set(REQUIRED_RULE_FIELDS) | OPTIONAL_RULE_FIELDS
    for field_name in rule:
        if field_name not in known:
            errors.append(f"Unknown field '{field_name}' in rule for {pattern}")

    # bool is checked by identity of type: JSON 0/1 must not pass as false/true
    for field_name in BOOLEAN_RULE_FIELDS:
        if field_name in rule and type(rule[field_name]) is not bool:
            errors.append(f"Field '{field_name}' must be boolean for {pattern}")

    if "danger" in rule:
        danger_error = validate_danger_level(rule["danger"], pattern)
        if danger_error:
            errors.append(danger_error)

    if "notes" in rule:
        notes = rule["notes"]
        if not isinstance(notes, str):
            errors.append(f"Field 'notes' must be a string for {pattern}")
        elif len(notes.strip()) < MIN_NOTES_LENGTH:
            errors.append(
                f"Field 'notes' for {pattern} is too short (min {MIN_NOTES_LENGTH} characters). "
                "Provide a meaningful explanation."
            )

    if "role" in rule:
        role = rule["role"]
        if not isinstance(role, str) or not _KEBAB_CASE_RE.fullmatch(role):
            errors.append(
                f"Field 'role' for {pattern} must be kebab-case (lowercase, digits, hyphens)"
            )

    if "mustRunValidators" in rule:
        validators = rule["mustRunValidators"]
        if not isinstance(validators, list):
            errors.append(f"Field 'mustRunValidators' must be an array for {pattern}")
        else:
            if not all(isinstance(v, str) and v.strip() for v in validators):
                errors.append(
                    f"Field 'mustRunValidators' must contain non-empty strings for {pattern}"
                )
            duplicates = _find_duplicates(validators)
            if duplicates:
                errors.append(
                    f"Field 'mustRunValidators' contains duplicates for {pattern}: "
                    f"{', '.join(str(d) for d in duplicates)}"
                )

    return errors


# ---------------------------------------------------------------------------
# Document validator
# ---------------------------------------------------------------------------


def validate_project_map(data: object) -> list[str]:
    """Validate a parsed project map document.

    Returns a list of human-readable errors; an empty list means the
    document is structurally sound.
    """
    if not isinstance(data, dict):
        return ["project-map.json must be a JSON object"]

    errors: list[str] = []

    for field_name in REQUIRED_TOP_LEVEL_FIELDS:
        if field_name not in data:
            errors.append(f"Missing required field: {field_name}")

    known = set(REQUIRED_TOP_LEVEL_FIELDS) | OPTIONAL_TOP_LEVEL_FIELDS
    for field_name in data:
        if field_name not in known:
            errors.append(f"Unknown top-level field: {field_name}")

    if "version" in data:
        version_error = validate_version(data["version"])
        if version_error:
            errors.append(version_error)

    if "lastReviewed" in data:
        date_error = validate_date(data["lastReviewed"], "lastReviewed")
        if date_error:
            errors.append(date_error)

    if "allowedTopLevelDirectories" in data:
        allowed = data["allowedTopLevelDirectories"]
        if not isinstance(allowed, list):
            errors.append("Field 'allowedTopLevelDirectories' must be an array")
        else:
            if not all(isinstance(d, str) and d and "/" not in d for d in allowed):
                errors.append(
                    "Field 'allowedTopLevelDirectories' must contain plain directory names"
                )
            duplicates = _find_duplicates(allowed)
            if duplicates:
                errors.append(
                    "Field 'allowedTopLevelDirectories' contains duplicates: "
                    f"{', '.join(str(d) for d in duplicates)}"
                )

    if "paths" in data:
        paths = data["paths"]
        if not isinstance(paths, dict):
            errors.append("Field 'paths' must be an object")
        else:
            for pattern, rule in paths.items():
                if not pattern.strip():
                    errors.append("Empty path pattern in 'paths'")
                    continue
                errors.extend(validate_path_rule(pattern, rule))

    return errors
