"""Tests for `pathguard install-hooks` CLI command."""

from __future__ import annotations

import stat
from typing import TYPE_CHECKING

from click.testing import CliRunner

from pathguard.cli import main

if TYPE_CHECKING:
    from pathlib import Path


def _setup_git_project(tmp_path: Path) -> Path:
    """Create a project with .git/hooks directory."""
    project = tmp_path / "proj"
    project.mkdir()
    hooks_dir = project / ".git" / "hooks"
    hooks_dir.mkdir(parents=True)
    return project


class TestInstallHooksCommand:
    def test_creates_pre_commit_hook(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        result = CliRunner().invoke(main, ["install-hooks", "--project", str(project)])
        assert result.exit_code == 0, result.output
        assert "Installed pre-commit hook." in result.output
        hook_path = project / ".git" / "hooks" / "pre-commit"
        content = hook_path.read_text()
        assert content.startswith("#!/bin/sh\n")
        assert "exec pathguard pre-commit" in content

    def test_hook_is_executable(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        CliRunner().invoke(main, ["install-hooks", "--project", str(project)])
        mode = (project / ".git" / "hooks" / "pre-commit").stat().st_mode
        assert mode & stat.S_IXUSR

    def test_reinstall_updates(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        runner = CliRunner()
        runner.invoke(main, ["install-hooks", "--project", str(project)])
        result = runner.invoke(main, ["install-hooks", "--project", str(project)])
        assert result.exit_code == 0, result.output
        assert "Updated pre-commit hook." in result.output
        assert list((project / ".git" / "hooks").iterdir()) == [
            project / ".git" / "hooks" / "pre-commit"
        ]

    def test_foreign_hook_backed_up(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        hook_path = project / ".git" / "hooks" / "pre-commit"
        hook_path.write_text("#!/bin/sh\necho custom\n")

        result = CliRunner().invoke(main, ["install-hooks", "--project", str(project)])
        assert result.exit_code == 0, result.output
        backups = list(hook_path.parent.glob("pre-commit.backup-*"))
        assert len(backups) == 1
        assert backups[0].read_text() == "#!/bin/sh\necho custom\n"
        assert "pathguard" in hook_path.read_text()

    def test_no_git_dir(self, tmp_path: Path) -> None:
        project = tmp_path / "no-git"
        project.mkdir()
        result = CliRunner().invoke(main, ["install-hooks", "--project", str(project)])
        assert result.exit_code == 2

    def test_remove_flag(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        runner = CliRunner()
        runner.invoke(main, ["install-hooks", "--project", str(project)])
        hook_path = project / ".git" / "hooks" / "pre-commit"
        assert hook_path.exists()

        result = runner.invoke(main, ["install-hooks", "--remove", "--project", str(project)])
        assert result.exit_code == 0, result.output
        assert not hook_path.exists()

    def test_remove_without_hook(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        result = CliRunner().invoke(
            main, ["install-hooks", "--remove", "--project", str(project)]
        )
        assert result.exit_code == 0, result.output
        assert "No pre-commit hook to remove." in result.output

    def test_remove_refuses_foreign_hook(self, tmp_path: Path) -> None:
        project = _setup_git_project(tmp_path)
        hook_path = project / ".git" / "hooks" / "pre-commit"
        hook_path.write_text("#!/bin/sh\necho custom\n")
        result = CliRunner().invoke(
            main, ["install-hooks", "--remove", "--project", str(project)]
        )
        assert result.exit_code == 2
        assert hook_path.exists()
