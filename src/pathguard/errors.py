"""Exceptions shared by the policy core and its front-ends."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised when the rule store, change list, or environment is unusable.

    Always fatal: front-ends report it and exit with code 2 before any
    per-file evaluation takes place.
    """
