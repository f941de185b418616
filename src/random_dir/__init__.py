"""Randomized Unix directory trees for fuzzing, and canonical tree snapshots."""

from .config import GeneratorConfig
from .errors import (
    CapabilityUnavailableError,
    ErrorCode,
    ExhaustedInputError,
    FilesystemOperationError,
    HardLinkInvariantError,
    RandomDirError,
    SnapshotMismatchError,
    ValidationError,
)
from .filetypes import ALL_FILE_TYPES, FileType, default_file_types
from .generator import (
    DeviceNodeWarning,
    DirBuilder,
    GeneratedEntry,
    GeneratedTree,
    generate,
)
from .observability import StructuredLogger
from .platform import DevicePolicy, PosixDevicePolicy, UnavailableDevicePolicy
from .snapshot import (
    ComparisonResult,
    FileRecord,
    Metadata,
    RecordMismatch,
    Snapshot,
    list_dir_all,
)
from .source import DecisionSource, Unstructured

__all__ = [
    "ALL_FILE_TYPES",
    "CapabilityUnavailableError",
    "ComparisonResult",
    "DecisionSource",
    "DevicePolicy",
    "DeviceNodeWarning",
    "DirBuilder",
    "ErrorCode",
    "ExhaustedInputError",
    "FileRecord",
    "FileType",
    "FilesystemOperationError",
    "GeneratedEntry",
    "GeneratedTree",
    "GeneratorConfig",
    "HardLinkInvariantError",
    "Metadata",
    "PosixDevicePolicy",
    "RandomDirError",
    "RecordMismatch",
    "Snapshot",
    "SnapshotMismatchError",
    "StructuredLogger",
    "UnavailableDevicePolicy",
    "Unstructured",
    "ValidationError",
    "default_file_types",
    "generate",
    "list_dir_all",
]
