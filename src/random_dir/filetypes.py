"""The closed set of entry kinds the generator can produce."""

from __future__ import annotations

import stat
import sys
from collections.abc import Iterable
from enum import StrEnum


class FileType(StrEnum):
    REGULAR = "regular"
    DIRECTORY = "directory"
    FIFO = "fifo"
    SOCKET = "socket"
    BLOCK_DEVICE = "block_device"
    CHAR_DEVICE = "char_device"
    SYMLINK = "symlink"
    HARD_LINK = "hard_link"


ALL_FILE_TYPES: tuple[FileType, ...] = tuple(FileType)
LINK_FILE_TYPES = frozenset({FileType.SYMLINK, FileType.HARD_LINK})
DEVICE_FILE_TYPES = frozenset({FileType.BLOCK_DEVICE, FileType.CHAR_DEVICE})


def default_file_types(platform: str = sys.platform) -> frozenset[FileType]:
    """Return the types enabled by default on ``platform``.

    macOS filesystems refuse device nodes outside ``/dev``, so block and
    character devices are left out there. Callers can still enable them.
    """
    if platform == "darwin":
        return frozenset(ALL_FILE_TYPES) - DEVICE_FILE_TYPES
    return frozenset(ALL_FILE_TYPES)


def canonical_order(types: Iterable[FileType]) -> tuple[FileType, ...]:
    wanted = set(types)
    return tuple(file_type for file_type in ALL_FILE_TYPES if file_type in wanted)


def file_type_of(mode: int) -> FileType:
    """Classify an ``st_mode``; hard links report as the type they point at."""
    if stat.S_ISLNK(mode):
        return FileType.SYMLINK
    if stat.S_ISDIR(mode):
        return FileType.DIRECTORY
    if stat.S_ISFIFO(mode):
        return FileType.FIFO
    if stat.S_ISSOCK(mode):
        return FileType.SOCKET
    if stat.S_ISBLK(mode):
        return FileType.BLOCK_DEVICE
    if stat.S_ISCHR(mode):
        return FileType.CHAR_DEVICE
    return FileType.REGULAR


__all__ = [
    "ALL_FILE_TYPES",
    "DEVICE_FILE_TYPES",
    "FileType",
    "LINK_FILE_TYPES",
    "canonical_order",
    "default_file_types",
    "file_type_of",
]
