"""Generator configuration and tunables."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from random_dir.errors import ValidationError
from random_dir.filetypes import FileType, canonical_order, default_file_types

MAX_ENTRIES = 10
MAX_NAME_LENGTH = 10
FUTURE_MTIME_SLACK = 60 * 60 * 24
MAX_NANOSECONDS = 999_999_999

PERMISSION_MASK = 0o777
OWNER_READ = 0o400
OWNER_READ_EXECUTE = 0o500
DEVICE_MODE_RANGE = (0o400, 0o777)
PARENT_DIR_MODE = 0o755


@dataclass(frozen=True, slots=True)
class GeneratorConfig:
    printable_names: bool = False
    file_types: frozenset[FileType] = field(default_factory=default_file_types)

    def __post_init__(self) -> None:
        types = frozenset(self.file_types)
        invalid = sorted(str(item) for item in types if not isinstance(item, FileType))
        if invalid:
            raise ValidationError(
                "Unsupported file types in generator configuration.",
                hint="Use members of random_dir.FileType.",
                context={"file_types": ", ".join(invalid)},
            )
        if not types:
            raise ValidationError(
                "Generator configuration must enable at least one file type.",
                hint="Pass a non-empty file_types set, e.g. {FileType.REGULAR}.",
            )
        object.__setattr__(self, "file_types", types)

    @classmethod
    def default(cls, platform: str = sys.platform) -> GeneratorConfig:
        # macOS filesystems reject names that are not valid UTF-8.
        return cls(
            printable_names=platform == "darwin",
            file_types=default_file_types(platform),
        )

    @property
    def choices(self) -> tuple[FileType, ...]:
        return canonical_order(self.file_types)

    def with_printable_names(self, value: bool) -> GeneratorConfig:
        return replace(self, printable_names=value)

    def with_file_types(self, file_types: Iterable[FileType]) -> GeneratorConfig:
        return replace(self, file_types=frozenset(file_types))


__all__ = [
    "DEVICE_MODE_RANGE",
    "FUTURE_MTIME_SLACK",
    "GeneratorConfig",
    "MAX_ENTRIES",
    "MAX_NAME_LENGTH",
    "MAX_NANOSECONDS",
    "OWNER_READ",
    "OWNER_READ_EXECUTE",
    "PARENT_DIR_MODE",
    "PERMISSION_MASK",
]
