"""Tests for pathguard.policy.checker — whole-run evaluation and formatting."""

from __future__ import annotations

import dataclasses
import json
from io import StringIO

from rich.console import Console

from pathguard.policy.checker import (
    CheckReport,
    format_json,
    format_porcelain,
    render_report,
    run_check,
)
from pathguard.policy.engine import Decision
from pathguard.policy.operations import FileOperation, OperationKind
from pathguard.policy.rule_store import ProjectMap


def _op(kind: OperationKind, path: str, new_path: str | None = None) -> FileOperation:
    return FileOperation(kind=kind, path=path, new_path=new_path)


def _render(report: CheckReport, *, ci: bool = False) -> str:
    buf = StringIO()
    console = Console(file=buf, force_terminal=False, no_color=True, width=200)
    render_report(report, console, ci=ci)
    return buf.getvalue()


class TestRunCheck:
    def test_clean_run(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [_op(OperationKind.MODIFIED, "docs/a.md")], "main")
        assert not report.blocked
        assert report.exit_code == 0
        assert report.violations == []
        assert report.project_map_version == "1.2.0"

    def test_validators_for_public_file(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map, [_op(OperationKind.MODIFIED, "public/x.html")], "feature/pages"
        )
        assert not report.blocked
        assert report.required_validators == {"generate-json", "validate-localization"}

    def test_critical_edit_on_main_blocked(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map, [_op(OperationKind.MODIFIED, "src/utils/localization.ts")], "main"
        )
        assert report.blocked
        assert report.exit_code == 1
        # protected-branch, branch-name and direct-edit violations
        assert len(report.violations) == 3
        assert report.results[0].decision is Decision.BLOCK

    def test_critical_edit_on_feature_branch_warns(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map,
            [_op(OperationKind.MODIFIED, "src/utils/localization.ts")],
            "feature/i18n-fr",
        )
        assert not report.blocked
        assert report.approvals_required == 1
        assert any("Approval required" in w for w in report.warnings)

    def test_critical_branch_check_independent_of_edit_flag(
        self, project_map: ProjectMap
    ) -> None:
        rules = tuple(
            dataclasses.replace(r, edit_allowed_direct=True, requires_approval=False)
            if r.pattern == "src/utils/localization.ts"
            else r
            for r in project_map.rules
        )
        relaxed = dataclasses.replace(project_map, rules=rules)
        report = run_check(
            relaxed, [_op(OperationKind.MODIFIED, "src/utils/localization.ts")], "main"
        )
        assert report.results[0].decision is Decision.ALLOW
        assert report.blocked
        assert report.branch_violations[0].message.startswith(
            "Cannot commit critical changes on protected branch main"
        )

    def test_critical_change_on_unapproved_branch(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map, [_op(OperationKind.MODIFIED, "project-map.json")], "wip/rules"
        )
        assert report.blocked
        assert len(report.branch_violations) == 1
        assert "Invalid branch name" in report.branch_violations[0].message

    def test_new_top_level_directory(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map, [_op(OperationKind.ADDED, "old/deprecated.js")], "feature/cleanup"
        )
        assert report.blocked
        assert report.new_top_level_directories == ["old"]
        assert report.violations[0].startswith("New top-level directory detected")
        assert report.results[0].messages == ("No protection rule found for old/deprecated.js",)

    def test_protected_delete_on_feature_branch(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map, [_op(OperationKind.DELETED, "public/index.html")], "feature/x"
        )
        assert report.blocked
        assert report.violations[0].startswith("Cannot delete public/index.html")

    def test_rename_matches_old_path(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map,
            [_op(OperationKind.RENAMED, "public/a.html", "docs/a.html")],
            "feature/x",
        )
        assert report.blocked
        assert report.results[0].matched_rule is not None
        assert report.results[0].matched_rule.pattern == "public/**"

    def test_deterministic(self, project_map: ProjectMap) -> None:
        ops = [
            _op(OperationKind.MODIFIED, "src/utils/localization.ts"),
            _op(OperationKind.ADDED, "v2/a.ts"),
            _op(OperationKind.DELETED, "public/a.html"),
        ]
        first = run_check(project_map, ops, "main")
        second = run_check(project_map, ops, "main")
        assert first.violations == second.violations
        assert first.warnings == second.warnings
        assert [r.decision for r in first.results] == [r.decision for r in second.results]

    def test_empty_run(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [], "main")
        assert not report.blocked
        assert report.results == []


class TestRenderReport:
    def test_passed(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [_op(OperationKind.MODIFIED, "docs/a.md")], "main")
        output = _render(report)
        assert "File Protection Check" in output
        assert "Branch: main" in output
        assert "All protection checks passed" in output

    def test_blocked_local(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [_op(OperationKind.DELETED, "public/a.html")], "main")
        output = _render(report)
        assert "Protection violations:" in output
        assert "COMMIT BLOCKED" in output
        assert "Cannot delete public/a.html" in output

    def test_blocked_ci(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [_op(OperationKind.DELETED, "public/a.html")], "main")
        output = _render(report, ci=True)
        assert "CI File Protection Check" in output
        assert "Possible bypass detected" in output
        assert "CI CHECK FAILED" in output
        assert "COMMIT BLOCKED" not in output

    def test_validator_reminder(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [_op(OperationKind.MODIFIED, "public/a.html")], "x")
        output = _render(report)
        assert "npm run generate-json" in output
        assert "npm run validate-localization" in output

    def test_markup_in_paths_is_escaped(self, project_map: ProjectMap) -> None:
        report = run_check(project_map, [_op(OperationKind.ADDED, "[lang]/index.astro")], "x")
        output = _render(report)
        assert "[lang]/ (not in allowedTopLevelDirectories)" in output


class TestFormatJson:
    def test_structure(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map,
            [
                _op(OperationKind.MODIFIED, "public/a.html"),
                _op(OperationKind.ADDED, "old/b.js"),
            ],
            "feature/x",
        )
        data = json.loads(format_json(report))
        assert data["branch"] == "feature/x"
        assert data["blocked"] is True
        assert data["new_top_level_directories"] == ["old"]
        assert data["required_validators"] == ["generate-json", "validate-localization"]
        assert data["summary"]["files_checked"] == 2
        assert data["results"][0]["pattern"] == "public/**"
        assert data["results"][1]["pattern"] is None


class TestFormatPorcelain:
    def test_lines(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map,
            [
                _op(OperationKind.MODIFIED, "public/a.html"),
                _op(OperationKind.RENAMED, "docs/a.md", "docs/b.md"),
                _op(OperationKind.ADDED, "old/c.js"),
            ],
            "feature/x",
        )
        lines = format_porcelain(report).splitlines()
        assert lines == [
            "block\trun\tnew-top-level-directory\told",
            "allow\tmodified\tpublic/a.html\t\tpublic/**",
            "allow\trenamed\tdocs/a.md\tdocs/b.md\tdocs/**",
            "allow\tadded\told/c.js\t\t",
            "validator\tgenerate-json",
            "validator\tvalidate-localization",
        ]

    def test_critical_branch_line(self, project_map: ProjectMap) -> None:
        report = run_check(
            project_map, [_op(OperationKind.MODIFIED, "project-map.json")], "main"
        )
        lines = format_porcelain(report).splitlines()
        assert lines[:2] == [
            "block\trun\tprotected-branch\tmain",
            "block\trun\tbranch-prefix\tmain",
        ]
        assert lines[2].startswith("block\tmodified\tproject-map.json")
