"""Validator advisor: which validators must run after the changes in a run."""

from __future__ import annotations

from collections.abc import Iterable

from pathguard.policy.engine import EvaluationResult


def collect_required_validators(results: Iterable[EvaluationResult]) -> frozenset[str]:
    """Union the ``mustRunValidators`` of every matched rule in the run."""
    required: set[str] = set()
    for result in results:
        if result.matched_rule is not None:
            required.update(result.matched_rule.must_run_validators)
    return frozenset(required)


def format_validator_reminder(validators: Iterable[str], *, runner: str = "npm run") -> str | None:
    """Render the post-check reminder, or None when nothing is required."""
    names = sorted(validators)
    if not names:
        return None
    prefix = f"{runner} " if runner else ""
    commands = "\n".join(f"  {prefix}{name}" for name in names)
    return f"Validators required: after committing, run:\n{commands}"
