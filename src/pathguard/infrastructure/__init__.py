"""Infrastructure domain — git adapter and configuration loading."""

from pathguard.infrastructure.config import GuardConfig, load_config
from pathguard.infrastructure.git import committer_identity, current_branch, staged_changes

__all__ = [
    "GuardConfig",
    "committer_identity",
    "current_branch",
    "load_config",
    "staged_changes",
]
