"""Integrity domain — rule store schema validation, self-checksums, bypass audit log."""

from pathguard.integrity.audit import (
    OverrideLogEntry,
    append_override,
    read_override_log,
)
from pathguard.integrity.checksums import (
    PROTECTED_FILES,
    ChecksumRecord,
    FileCheck,
    FileStatus,
    IntegrityReport,
    generate_checksums,
    load_checksum_record,
    sha256_file,
    verify_checksums,
)
from pathguard.integrity.schema import (
    PROJECT_MAP_FILENAME,
    parse_project_map_text,
    read_project_map_document,
    validate_project_map,
)

__all__ = [
    "PROJECT_MAP_FILENAME",
    "PROTECTED_FILES",
    "ChecksumRecord",
    "FileCheck",
    "FileStatus",
    "IntegrityReport",
    "OverrideLogEntry",
    "append_override",
    "generate_checksums",
    "load_checksum_record",
    "parse_project_map_text",
    "read_override_log",
    "read_project_map_document",
    "sha256_file",
    "validate_project_map",
    "verify_checksums",
]
