"""Platform policies for creating device nodes."""

from __future__ import annotations

import os
import stat
import sys
from dataclasses import dataclass
from typing import Protocol

from random_dir.errors import CapabilityUnavailableError, filesystem_error
from random_dir.filetypes import FileType

# Loop device on both Linux and macOS.
BLOCK_DEVICE_NUMBERS = (7, 0)
# /dev/null
CHAR_DEVICE_NUMBERS = {"linux": (1, 3), "darwin": (3, 2)}


class DevicePolicy(Protocol):
    name: str

    def available(self) -> bool:
        """Return whether this policy can create device nodes at all."""

    def make_device(self, path: bytes, *, mode: int, kind: FileType) -> None:
        """Create a block or character device node at ``path``."""


def device_numbers(kind: FileType, platform: str = sys.platform) -> tuple[int, int]:
    if kind is FileType.BLOCK_DEVICE:
        return BLOCK_DEVICE_NUMBERS
    if kind is FileType.CHAR_DEVICE:
        return CHAR_DEVICE_NUMBERS.get(platform, CHAR_DEVICE_NUMBERS["linux"])
    raise ValueError(f"Not a device file type: {kind}")


@dataclass(slots=True)
class PosixDevicePolicy:
    name: str = "posix"
    platform: str = sys.platform

    def available(self) -> bool:
        return True

    def make_device(self, path: bytes, *, mode: int, kind: FileType) -> None:
        major, minor = device_numbers(kind, self.platform)
        type_bits = stat.S_IFBLK if kind is FileType.BLOCK_DEVICE else stat.S_IFCHR
        try:
            os.mknod(path, mode | type_bits, os.makedev(major, minor))
        except OSError as exc:
            raise filesystem_error("mknod", path, exc) from exc


@dataclass(slots=True)
class UnavailableDevicePolicy:
    name: str = "unavailable"

    def available(self) -> bool:
        return False

    def make_device(self, path: bytes, *, mode: int, kind: FileType) -> None:
        raise CapabilityUnavailableError(
            "Device nodes cannot be created on this platform.",
            hint="Remove block_device and char_device from GeneratorConfig.file_types.",
            context={"policy": self.name, "file_type": str(kind)},
        )


def default_device_policy() -> DevicePolicy:
    if hasattr(os, "mknod") and hasattr(os, "makedev"):
        return PosixDevicePolicy()
    return UnavailableDevicePolicy()


__all__ = [
    "BLOCK_DEVICE_NUMBERS",
    "CHAR_DEVICE_NUMBERS",
    "DevicePolicy",
    "PosixDevicePolicy",
    "UnavailableDevicePolicy",
    "default_device_policy",
    "device_numbers",
]
