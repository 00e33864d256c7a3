"""pathguard - file/path protection policy engine."""

__version__ = "1.0.0"
