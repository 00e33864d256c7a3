"""Shared test fixtures for pathguard."""

from __future__ import annotations

import copy
import json
import os
import subprocess
from typing import TYPE_CHECKING

import pytest

from pathguard.policy.rule_store import ProjectMap, parse_project_map

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


_SAMPLE_MAP: dict[str, object] = {
    "version": "1.2.0",
    "lastReviewed": "2026-09-01",
    "allowedTopLevelDirectories": ["src", "public", "docs", "scripts", ".github"],
    "paths": {
        "src/**": {
            "role": "source",
            "danger": "medium",
            "editAllowedDirect": True,
            "allowDelete": True,
            "allowRename": True,
            "requiresApproval": False,
            "notes": "Application source code, edited freely.",
        },
        "src/utils/localization.ts": {
            "role": "localization-core",
            "danger": "critical",
            "editAllowedDirect": False,
            "allowDelete": False,
            "allowRename": False,
            "requiresApproval": True,
            "notes": "Single source of truth for locale routing.",
        },
        "public/**": {
            "role": "published-pages",
            "danger": "high",
            "editAllowedDirect": True,
            "allowDelete": False,
            "allowRename": False,
            "requiresApproval": False,
            "mustRunValidators": ["generate-json", "validate-localization"],
            "notes": "Published HTML pages served as-is.",
        },
        "docs/**": {
            "role": "documentation",
            "danger": "low",
            "editAllowedDirect": True,
            "allowDelete": True,
            "allowRename": True,
            "requiresApproval": False,
            "notes": "Contributor documentation.",
        },
        "project-map.json": {
            "role": "protection-rules",
            "danger": "critical",
            "editAllowedDirect": False,
            "allowDelete": False,
            "allowRename": False,
            "requiresApproval": True,
            "notes": "The protection rules themselves.",
        },
    },
}


@pytest.fixture()
def sample_map_data() -> dict[str, object]:
    """A structurally valid project map document (fresh copy per test)."""
    return copy.deepcopy(_SAMPLE_MAP)


@pytest.fixture()
def project_map(sample_map_data: dict[str, object]) -> ProjectMap:
    return parse_project_map(sample_map_data)


@pytest.fixture()
def tmp_project(tmp_path: Path, sample_map_data: dict[str, object]) -> Path:
    """Create a project root containing the sample ``project-map.json``."""
    (tmp_path / "project-map.json").write_text(
        json.dumps(sample_map_data, indent=2), encoding="utf-8"
    )
    return tmp_path


_GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "test",
    "GIT_AUTHOR_EMAIL": "t@t",
    "GIT_COMMITTER_NAME": "test",
    "GIT_COMMITTER_EMAIL": "t@t",
}


def _git(cwd: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(  # noqa: S603
        ["git", *args],  # noqa: S607
        cwd=cwd,
        capture_output=True,
        text=True,
        env=_GIT_ENV,
        check=True,
    )


@pytest.fixture()
def git_project(tmp_project: Path) -> Path:
    """A git repository on ``main`` with the sample map and a few files committed."""
    _git(tmp_project, "init", "-q")
    _git(tmp_project, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(tmp_project, "config", "user.name", "test")
    _git(tmp_project, "config", "user.email", "t@t")

    (tmp_project / "src" / "utils").mkdir(parents=True)
    (tmp_project / "src" / "utils" / "localization.ts").write_text(
        "export const locales = ['en'];\n", encoding="utf-8"
    )
    (tmp_project / "public").mkdir()
    (tmp_project / "public" / "index.html").write_text("<h1>hi</h1>\n", encoding="utf-8")
    (tmp_project / "docs").mkdir()
    (tmp_project / "docs" / "guide.md").write_text("# Guide\n", encoding="utf-8")

    _git(tmp_project, "add", ".")
    _git(tmp_project, "commit", "-q", "-m", "initial")
    return tmp_project


@pytest.fixture()
def git() -> Callable[..., subprocess.CompletedProcess[str]]:
    """Run a git command in a given directory (raises on failure)."""
    return _git
