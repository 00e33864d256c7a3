"""Optional ``.pathguard/config.yml``: where the state files live.

Only file locations and presentation are configurable.  Protected branches,
approved branch prefixes and the integrity manifest are fixed in code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_RELATIVE_PATH = ".pathguard/config.yml"


@dataclass(frozen=True)
class GuardConfig:
    """Resolved settings; paths are relative to the project root."""

    checksums_path: str = ".pathguard/protection-checksums.json"
    override_log: str = ".git/protection-overrides.log"
    validator_runner: str = "npm run"

    def resolve_checksums_path(self, project_root: Path) -> Path:
        return project_root / self.checksums_path

    def resolve_override_log(self, project_root: Path) -> Path:
        return project_root / self.override_log


def load_config(project_root: Path) -> GuardConfig:
    """Load ``.pathguard/config.yml``, falling back to defaults.

    Missing keys take their defaults; an unreadable file or a non-mapping
    document is logged and ignored.
    """
    config_path = project_root / CONFIG_RELATIVE_PATH
    if not config_path.is_file():
        return GuardConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using defaults", CONFIG_RELATIVE_PATH)
        return GuardConfig()

    if data is None:
        return GuardConfig()
    if not isinstance(data, dict):
        logger.warning("%s must be a mapping, using defaults", CONFIG_RELATIVE_PATH)
        return GuardConfig()

    defaults = GuardConfig()
    kwargs: dict[str, str] = {}
    for key in ("checksums_path", "override_log", "validator_runner"):
        value = data.get(key)
        if value is None:
            continue
        if not isinstance(value, str) or (key != "validator_runner" and not value.strip()):
            logger.warning("Ignoring invalid %s value in %s", key, CONFIG_RELATIVE_PATH)
            continue
        kwargs[key] = value

    unknown = sorted(set(data) - {"checksums_path", "override_log", "validator_runner"})
    if unknown:
        logger.warning(
            "Unknown keys in %s: %s", CONFIG_RELATIVE_PATH, ", ".join(map(str, unknown))
        )

    return GuardConfig(
        checksums_path=kwargs.get("checksums_path", defaults.checksums_path),
        override_log=kwargs.get("override_log", defaults.override_log),
        validator_runner=kwargs.get("validator_runner", defaults.validator_runner),
    )
