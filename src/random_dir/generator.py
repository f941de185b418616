"""Randomized directory tree generation.

``generate()`` drives a decision source to build between zero and
``MAX_ENTRIES`` entries inside a fresh temporary root. Every decision (entry
count, names, types, modes, timestamps, contents and link targets) is drawn
from the source in a fixed order, so identical input bytes, configuration
and reference time produce an identical tree.

Names are handled as raw bytes end to end. A drawn name is stripped of one
leading separator and normalized lexically against the root, so ``..``
segments can never escape it. Names that alias an existing directory or an
earlier entry are skipped rather than redrawn.

The only non-reproducible input is the current time, which bounds generated
modification times to at most one day in the future. Pass ``now`` to freeze
it.
"""

from __future__ import annotations

import os
import socket
import tempfile
import time
import warnings
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from random_dir.config import (
    DEVICE_MODE_RANGE,
    FUTURE_MTIME_SLACK,
    MAX_ENTRIES,
    MAX_NAME_LENGTH,
    MAX_NANOSECONDS,
    OWNER_READ,
    OWNER_READ_EXECUTE,
    PARENT_DIR_MODE,
    PERMISSION_MASK,
    GeneratorConfig,
)
from random_dir.errors import HardLinkInvariantError, filesystem_error
from random_dir.filetypes import DEVICE_FILE_TYPES, LINK_FILE_TYPES, FileType
from random_dir.observability import StructuredLogger
from random_dir.platform import DevicePolicy, default_device_policy
from random_dir.source import DecisionSource

ROOT_PREFIX = "random-dir-"


class DeviceNodeWarning(UserWarning):
    """Device file types are enabled but cannot be created on this host."""


@dataclass(frozen=True, slots=True)
class GeneratedEntry:
    path: str
    file_type: FileType


class GeneratedTree:
    """A populated temporary root, removed recursively exactly once.

    Use it as a context manager, or call :meth:`cleanup` explicitly. If
    neither happens the root is removed when the tree is garbage collected.
    """

    def __init__(
        self,
        tempdir: tempfile.TemporaryDirectory[str],
        entries: tuple[GeneratedEntry, ...],
    ) -> None:
        self._tempdir: tempfile.TemporaryDirectory[str] | None = tempdir
        self._path = Path(tempdir.name)
        self.entries = entries

    @classmethod
    def arbitrary(cls, source: DecisionSource) -> GeneratedTree:
        """Generate a tree with the platform default configuration."""
        return generate(source, GeneratorConfig.default())

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._tempdir is None

    def cleanup(self) -> None:
        if self._tempdir is None:
            return
        tempdir, self._tempdir = self._tempdir, None
        tempdir.cleanup()

    def into_tempdir(self) -> tempfile.TemporaryDirectory[str]:
        """Hand the underlying temporary directory over to the caller."""
        if self._tempdir is None:
            raise RuntimeError("Generated tree has already been released.")
        tempdir, self._tempdir = self._tempdir, None
        return tempdir

    def __enter__(self) -> GeneratedTree:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        state = "closed" if self.closed else f"{len(self.entries)} entries"
        return f"<GeneratedTree {str(self._path)!r} ({state})>"


class DirBuilder:
    """Fluent front end over :func:`generate`."""

    def __init__(self, config: GeneratorConfig | None = None) -> None:
        self.config = config or GeneratorConfig.default()

    def printable_names(self, value: bool) -> DirBuilder:
        """Restrict names to lowercase ASCII letters, e.g. for testing CLI tools."""
        return DirBuilder(self.config.with_printable_names(value))

    def file_types(self, file_types: Iterable[FileType]) -> DirBuilder:
        return DirBuilder(self.config.with_file_types(file_types))

    def create(
        self,
        source: DecisionSource,
        *,
        now: int | None = None,
        device_policy: DevicePolicy | None = None,
        logger: StructuredLogger | None = None,
    ) -> GeneratedTree:
        return generate(
            source,
            self.config,
            now=now,
            device_policy=device_policy,
            logger=logger,
        )


def generate(
    source: DecisionSource,
    config: GeneratorConfig | None = None,
    *,
    now: int | None = None,
    device_policy: DevicePolicy | None = None,
    logger: StructuredLogger | None = None,
) -> GeneratedTree:
    """Build a random tree inside a fresh temporary root.

    Raises ``ExhaustedInputError`` when ``source`` runs dry and
    ``FilesystemOperationError`` when any filesystem call fails. In both
    cases, and on ``HardLinkInvariantError``, the partially built root is
    removed before the exception propagates.
    """
    config = config or GeneratorConfig.default()
    policy = device_policy or default_device_policy()
    if config.file_types & DEVICE_FILE_TYPES and not policy.available():
        warnings.warn(
            f"Device file types are enabled but device policy `{policy.name}` cannot create them.",
            DeviceNodeWarning,
            stacklevel=2,
        )
    reference = int(time.time()) if now is None else now

    try:
        tempdir = tempfile.TemporaryDirectory(prefix=ROOT_PREFIX)
    except OSError as exc:
        raise filesystem_error("mkdtemp", tempfile.gettempdir(), exc) from exc
    writer = _TreeWriter(
        root=os.fsencode(tempdir.name),
        source=source,
        config=config,
        device_policy=policy,
        reference_time=reference,
        logger=logger,
    )
    writer.log(operation="create_root", message="Created temporary root.", path=tempdir.name)
    try:
        entries = writer.populate()
    except BaseException as exc:
        writer.log(
            operation="abort",
            message=f"Generation aborted: {type(exc).__name__}.",
            path=tempdir.name,
            level="error",
        )
        tempdir.cleanup()
        raise
    return GeneratedTree(tempdir, entries)


def normalize_relative(raw: bytes) -> bytes:
    """Resolve ``.`` and ``..`` lexically, clamping at the root.

    An empty result names the root itself.
    """
    if raw.startswith(b"/"):
        raw = raw[1:]
    parts: list[bytes] = []
    for part in raw.split(b"/"):
        if part in (b"", b"."):
            continue
        if part == b"..":
            if parts:
                parts.pop()
            continue
        parts.append(part)
    return b"/".join(parts)


class _TreeWriter:
    def __init__(
        self,
        *,
        root: bytes,
        source: DecisionSource,
        config: GeneratorConfig,
        device_policy: DevicePolicy,
        reference_time: int,
        logger: StructuredLogger | None,
    ) -> None:
        self.root = root
        self.source = source
        self.config = config
        self.device_policy = device_policy
        self.reference_time = reference_time
        self.logger = logger
        self.link_pool: list[bytes] = []
        self.seen: set[bytes] = set()
        self.entries: list[GeneratedEntry] = []
        self.handlers: dict[FileType, Callable[[bytes, int], None]] = {
            FileType.REGULAR: self._regular,
            FileType.DIRECTORY: self._directory,
            FileType.FIFO: self._fifo,
            FileType.SOCKET: self._socket,
            FileType.BLOCK_DEVICE: self._block_device,
            FileType.CHAR_DEVICE: self._char_device,
            FileType.SYMLINK: self._symlink,
            FileType.HARD_LINK: self._hard_link,
        }

    def populate(self) -> tuple[GeneratedEntry, ...]:
        count = self.source.int_in_range(0, MAX_ENTRIES)
        for _ in range(count):
            self._step()
        return tuple(self.entries)

    def _step(self) -> None:
        raw = self._draw_name()
        if not raw:
            self.log(operation="skip", message="Empty name.", extra={"reason": "empty"})
            return
        relative = normalize_relative(raw)
        path = os.path.join(self.root, relative) if relative else self.root
        display = os.fsdecode(relative)
        if path in self.seen or os.path.isdir(path):
            self.log(
                operation="skip",
                message="Name aliases an existing entry.",
                path=display,
                extra={"reason": "duplicate"},
            )
            return
        self._ensure_parent(path)

        kind: FileType = self.source.choose(self.config.choices)
        if kind in LINK_FILE_TYPES and not self.link_pool:
            kind = FileType.REGULAR
        mtime_ns = self._draw_mtime_ns()
        self.handlers[kind](path, mtime_ns)

        self.seen.add(path)
        if kind is not FileType.DIRECTORY:
            self.link_pool.append(path)
        self.entries.append(GeneratedEntry(path=display, file_type=kind))
        self.log(operation="create", message="Created entry.", path=display, file_type=kind.value)

    def _draw_name(self) -> bytes:
        if self.config.printable_names:
            length = self.source.int_in_range(1, MAX_NAME_LENGTH)
            return bytes(self.source.int_in_range(ord("a"), ord("z")) for _ in range(length))
        # NUL cannot appear in a path.
        return self.source.bytes().replace(b"\x00", b"")

    def _draw_mtime_ns(self) -> int:
        seconds = self.source.int_in_range(0, self.reference_time + FUTURE_MTIME_SLACK)
        nanoseconds = self.source.int_in_range(0, MAX_NANOSECONDS)
        return seconds * 1_000_000_000 + nanoseconds

    def _draw_mode(self, forced: int) -> int:
        return self.source.int_in_range(0, PERMISSION_MASK) | forced

    def _ensure_parent(self, path: bytes) -> None:
        parent = os.path.dirname(path)
        try:
            os.makedirs(parent, PARENT_DIR_MODE, exist_ok=True)
        except OSError as exc:
            raise filesystem_error("makedirs", parent, exc) from exc

    def _regular(self, path: bytes, mtime_ns: int) -> None:
        mode = self._draw_mode(OWNER_READ)
        contents = self.source.bytes()
        try:
            with open(path, "wb") as handle:
                handle.write(contents)
        except OSError as exc:
            raise filesystem_error("write", path, exc) from exc
        self._chmod(path, mode)
        self._set_mtime(path, mtime_ns)

    def _directory(self, path: bytes, mtime_ns: int) -> None:
        mode = self._draw_mode(OWNER_READ_EXECUTE)
        try:
            os.mkdir(path, mode)
        except OSError as exc:
            raise filesystem_error("mkdir", path, exc) from exc
        self._chmod(path, mode)
        self._set_mtime(path, mtime_ns)

    def _fifo(self, path: bytes, mtime_ns: int) -> None:
        mode = self._draw_mode(OWNER_READ)
        try:
            os.mkfifo(path, mode)
        except OSError as exc:
            raise filesystem_error("mkfifo", path, exc) from exc
        self._chmod(path, mode)
        self._set_mtime(path, mtime_ns)

    def _socket(self, path: bytes, mtime_ns: int) -> None:
        try:
            with socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM) as endpoint:
                endpoint.bind(path)
        except OSError as exc:
            raise filesystem_error("bind", path, exc) from exc
        self._set_mtime(path, mtime_ns)

    def _block_device(self, path: bytes, mtime_ns: int) -> None:
        self._device(path, mtime_ns, FileType.BLOCK_DEVICE)

    def _char_device(self, path: bytes, mtime_ns: int) -> None:
        self._device(path, mtime_ns, FileType.CHAR_DEVICE)

    def _device(self, path: bytes, mtime_ns: int, kind: FileType) -> None:
        mode = self.source.int_in_range(*DEVICE_MODE_RANGE)
        self.device_policy.make_device(path, mode=mode, kind=kind)
        self._chmod(path, mode)
        self._set_mtime(path, mtime_ns)

    def _symlink(self, path: bytes, mtime_ns: int) -> None:
        # The link keeps its creation time.
        target = self.source.choose(self.link_pool)
        try:
            os.symlink(target, path)
        except OSError as exc:
            raise filesystem_error("symlink", path, exc) from exc

    def _hard_link(self, path: bytes, mtime_ns: int) -> None:
        original = self.source.choose(self.link_pool)
        try:
            os.link(original, path, follow_symlinks=False)
        except OSError as exc:
            raise HardLinkInvariantError(
                f"original = `{os.fsdecode(original)}`, path = `{os.fsdecode(path)}`: {exc}"
            ) from exc

    def _chmod(self, path: bytes, mode: int) -> None:
        try:
            os.chmod(path, mode)
        except OSError as exc:
            raise filesystem_error("chmod", path, exc) from exc

    def _set_mtime(self, path: bytes, mtime_ns: int) -> None:
        try:
            atime_ns = os.lstat(path).st_atime_ns
            os.utime(path, ns=(atime_ns, mtime_ns), follow_symlinks=False)
        except OSError as exc:
            raise filesystem_error("utime", path, exc) from exc

    def log(
        self,
        *,
        operation: str,
        message: str,
        path: str | None = None,
        file_type: str | None = None,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        if self.logger is None:
            return
        self.logger.log(
            operation=operation,
            message=message,
            path=path,
            file_type=file_type,
            level=level,
            extra=extra,
        )


__all__ = [
    "DeviceNodeWarning",
    "DirBuilder",
    "GeneratedEntry",
    "GeneratedTree",
    "generate",
    "normalize_relative",
]
