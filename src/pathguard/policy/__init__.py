"""Policy domain — rule store, path matcher, operation classifier, engine, run checker."""

from pathguard.policy.advisor import collect_required_validators, format_validator_reminder
from pathguard.policy.branch import (
    APPROVED_BRANCH_PREFIXES,
    BRANCH_PREFIX_CHECK,
    PROTECTED_BRANCH_CHECK,
    BranchViolation,
    check_critical_branch,
    has_approved_prefix,
    is_protected_branch,
)
from pathguard.policy.checker import (
    CheckReport,
    format_json,
    format_porcelain,
    render_report,
    report_to_dict,
    run_check,
)
from pathguard.policy.engine import Decision, EvaluationResult, evaluate
from pathguard.policy.matcher import compile_pattern, match_rule, normalize_path
from pathguard.policy.operations import (
    FileOperation,
    OperationKind,
    classify,
    parse_name_status,
    parse_name_status_z,
)
from pathguard.policy.rule_store import (
    DangerLevel,
    ProjectMap,
    ProtectionRule,
    load_project_map,
    parse_project_map,
)
from pathguard.policy.top_level import find_new_top_level_directories, top_level_violation

__all__ = [
    "APPROVED_BRANCH_PREFIXES",
    "BRANCH_PREFIX_CHECK",
    "PROTECTED_BRANCH_CHECK",
    "BranchViolation",
    "CheckReport",
    "DangerLevel",
    "Decision",
    "EvaluationResult",
    "FileOperation",
    "OperationKind",
    "ProjectMap",
    "ProtectionRule",
    "check_critical_branch",
    "classify",
    "collect_required_validators",
    "compile_pattern",
    "evaluate",
    "find_new_top_level_directories",
    "format_json",
    "format_porcelain",
    "format_validator_reminder",
    "has_approved_prefix",
    "is_protected_branch",
    "load_project_map",
    "match_rule",
    "normalize_path",
    "parse_name_status",
    "parse_name_status_z",
    "parse_project_map",
    "render_report",
    "report_to_dict",
    "run_check",
    "top_level_violation",
]
