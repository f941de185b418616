"""Canonical, comparable snapshots of directory trees.

``list_dir_all()`` records every entry below a root: its own (never
dereferenced) metadata and its content, sorted by path. Real inode numbers
are replaced with dense identifiers assigned in path order, so two trees
with the same shape and the same hard-link structure compare equal even
though the OS numbered their inodes differently.

``Snapshot`` wraps a record sequence with JSON and CBOR export, loading, and
field-by-field comparison for checking that a tool preserved a tree.
"""

from __future__ import annotations

import json
import os
import stat
from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal, TypeVar

import cbor2

from random_dir.errors import SnapshotMismatchError, ValidationError, filesystem_error
from random_dir.filetypes import FileType, file_type_of
from random_dir.observability import StructuredLogger

SCHEMA_VERSION = 1

MismatchReason = Literal["missing_actual", "unexpected_actual", "value_mismatch"]

R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class Metadata:
    dev: int
    ino: int
    mode: int
    uid: int
    gid: int
    nlink: int
    rdev: int
    mtime: int
    file_size: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> Metadata:
        return cls(
            dev=st.st_dev,
            ino=st.st_ino,
            mode=st.st_mode,
            uid=st.st_uid,
            gid=st.st_gid,
            nlink=st.st_nlink,
            rdev=st.st_rdev,
            mtime=st.st_mtime_ns // 1_000_000_000,
            file_size=st.st_size,
        )

    @property
    def file_type(self) -> FileType:
        return file_type_of(self.mode)

    @property
    def permissions(self) -> int:
        return stat.S_IMODE(self.mode)


@dataclass(frozen=True, slots=True)
class FileRecord:
    path: str
    metadata: Metadata
    content: bytes

    @property
    def raw_path(self) -> bytes:
        return os.fsencode(self.path)


METADATA_FIELDS: tuple[str, ...] = tuple(item.name for item in fields(Metadata))
COMPARABLE_FIELDS: frozenset[str] = frozenset((*METADATA_FIELDS, "content"))


def list_dir_all(root: str | os.PathLike[str], *, logger: StructuredLogger | None = None) -> list[FileRecord]:
    """Return one record per entry below ``root``, excluding ``root`` itself.

    Any listing, stat or read failure raises ``FilesystemOperationError``;
    no partial result is returned.
    """
    base = os.fsencode(os.fspath(root))
    found: list[tuple[bytes, FileRecord]] = []
    pending: list[bytes] = [b""]
    while pending:
        relative_dir = pending.pop()
        directory = os.path.join(base, relative_dir) if relative_dir else base
        for name in _checked("listdir", directory, os.listdir, directory):
            relative = os.path.join(relative_dir, name) if relative_dir else name
            path = os.path.join(base, relative)
            st = _checked("lstat", path, os.lstat, path)
            if stat.S_ISREG(st.st_mode):
                content = _checked("read", path, _read_bytes, path)
            elif stat.S_ISLNK(st.st_mode):
                content = _checked("readlink", path, os.readlink, path)
            else:
                content = b""
            if stat.S_ISDIR(st.st_mode):
                pending.append(relative)
            record = FileRecord(
                path=os.fsdecode(relative),
                metadata=Metadata.from_stat(st),
                content=content,
            )
            found.append((relative, record))

    found.sort(key=lambda item: tuple(item[0].split(b"/")))
    records = _remap_inodes([record for _, record in found])
    if logger is not None:
        logger.log(
            operation="snapshot",
            message=f"Captured {len(records)} entries.",
            path=os.fsdecode(base),
        )
    return records


def _remap_inodes(records: list[FileRecord]) -> list[FileRecord]:
    # Inode numbers are only unique per device.
    inodes: dict[tuple[int, int], int] = {}
    remapped: list[FileRecord] = []
    for record in records:
        key = (record.metadata.dev, record.metadata.ino)
        inode = inodes.setdefault(key, len(inodes))
        remapped.append(replace(record, metadata=replace(record.metadata, ino=inode)))
    return remapped


def _read_bytes(path: bytes) -> bytes:
    with open(path, "rb") as handle:
        return handle.read()


def _checked(operation: str, path: bytes, func: Callable[..., R], *args: Any) -> R:
    try:
        return func(*args)
    except OSError as exc:
        raise filesystem_error(operation, path, exc) from exc


@dataclass(frozen=True, slots=True)
class RecordMismatch:
    path: str
    reason: MismatchReason
    field: str | None
    expected: str | None
    actual: str | None


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    ok: bool
    mismatches: tuple[RecordMismatch, ...] = ()


@dataclass(frozen=True, slots=True)
class Snapshot:
    records: tuple[FileRecord, ...]
    schema_version: int = SCHEMA_VERSION

    @classmethod
    def capture(
        cls,
        root: str | os.PathLike[str],
        *,
        logger: StructuredLogger | None = None,
    ) -> Snapshot:
        return cls(records=tuple(list_dir_all(root, logger=logger)))

    def paths(self) -> list[str]:
        return [record.path for record in self.records]

    def to_json(self, path: str | Path | None = None) -> str:
        payload = {
            "schema_version": self.schema_version,
            "records": [
                {
                    "path": record.path,
                    "metadata": _metadata_payload(record.metadata),
                    "content": record.content.hex(),
                }
                for record in self.records
            ],
        }
        encoded = json.dumps(payload, indent=2, sort_keys=True) + "\n"
        if path is not None:
            Path(path).write_text(encoded, encoding="utf-8")
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        # Paths go out as raw bytes: names need not be valid UTF-8.
        payload = {
            "schema_version": self.schema_version,
            "records": [
                {
                    "path": record.raw_path,
                    "metadata": _metadata_payload(record.metadata),
                    "content": record.content,
                }
                for record in self.records
            ],
        }
        encoded = cbor2.dumps(payload, canonical=True)
        if path is not None:
            Path(path).write_bytes(encoded)
        return encoded

    @classmethod
    def from_json(cls, raw: str | bytes) -> Snapshot:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValidationError("Invalid snapshot JSON.", hint=str(exc)) from exc
        return cls._from_payload(payload, decode_path=_json_path, decode_content=_json_content)

    @classmethod
    def from_cbor(cls, raw: bytes) -> Snapshot:
        try:
            payload = cbor2.loads(raw)
        except cbor2.CBORDecodeError as exc:
            raise ValidationError("Invalid snapshot CBOR.", hint=str(exc)) from exc
        return cls._from_payload(payload, decode_path=_cbor_path, decode_content=_cbor_content)

    @classmethod
    def load(cls, path: str | Path) -> Snapshot:
        snapshot_path = Path(path)
        try:
            if snapshot_path.suffix == ".cbor":
                return cls.from_cbor(snapshot_path.read_bytes())
            return cls.from_json(snapshot_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise ValidationError(
                "Snapshot file does not exist.",
                hint="Write one first with Snapshot.to_json() or Snapshot.to_cbor().",
                context={"path": str(snapshot_path)},
            ) from exc

    def compare(self, expected: Snapshot, *, ignore: Iterable[str] = ()) -> ComparisonResult:
        """Compare this (actual) snapshot against ``expected``.

        Fields named in ``ignore`` (metadata field names or ``content``) are
        skipped, e.g. ``dev`` and ``uid`` after extracting an archive on
        another machine.
        """
        ignored = frozenset(ignore)
        unknown = sorted(ignored - COMPARABLE_FIELDS)
        if unknown:
            raise ValidationError(
                "Unknown snapshot fields in ignore list.",
                hint=f"Valid fields: {', '.join(sorted(COMPARABLE_FIELDS))}.",
                context={"ignore": ", ".join(unknown)},
            )
        checked = [name for name in (*METADATA_FIELDS, "content") if name not in ignored]

        actual_by_path = {record.path: record for record in self.records}
        expected_by_path = {record.path: record for record in expected.records}
        mismatches: list[RecordMismatch] = []
        for path, want in expected_by_path.items():
            got = actual_by_path.get(path)
            if got is None:
                mismatches.append(
                    RecordMismatch(path=path, reason="missing_actual", field=None, expected=path, actual=None),
                )
                continue
            for name in checked:
                want_value = _field_value(want, name)
                got_value = _field_value(got, name)
                if want_value != got_value:
                    mismatches.append(
                        RecordMismatch(
                            path=path,
                            reason="value_mismatch",
                            field=name,
                            expected=_render(name, want_value),
                            actual=_render(name, got_value),
                        ),
                    )
        for path in actual_by_path:
            if path in expected_by_path:
                continue
            mismatches.append(
                RecordMismatch(path=path, reason="unexpected_actual", field=None, expected=None, actual=path),
            )
        return ComparisonResult(ok=not mismatches, mismatches=tuple(mismatches))

    def assert_matches(self, expected: Snapshot, *, ignore: Iterable[str] = ()) -> None:
        result = self.compare(expected, ignore=ignore)
        if result.ok:
            return
        first = result.mismatches[0]
        raise SnapshotMismatchError(
            f"Snapshot differs from expected in {len(result.mismatches)} place(s).",
            hint="Inspect Snapshot.compare() for the full mismatch list.",
            context={
                "path": first.path,
                "reason": first.reason,
                "field": first.field or "",
                "expected": first.expected or "",
                "actual": first.actual or "",
            },
        )

    @classmethod
    def _from_payload(
        cls,
        payload: Any,
        *,
        decode_path: Callable[[Any], str],
        decode_content: Callable[[Any], bytes],
    ) -> Snapshot:
        if not isinstance(payload, dict):
            raise ValidationError("Invalid snapshot payload type.")
        version = payload.get("schema_version")
        if version != SCHEMA_VERSION:
            raise ValidationError(
                "Unsupported snapshot schema version.",
                context={"schema_version": str(version), "supported": str(SCHEMA_VERSION)},
            )
        raw_records = payload.get("records")
        if not isinstance(raw_records, list):
            raise ValidationError("Invalid snapshot `records` value.")
        records: list[FileRecord] = []
        for item in raw_records:
            if not isinstance(item, dict):
                raise ValidationError("Invalid record entry in snapshot.")
            records.append(
                FileRecord(
                    path=decode_path(item.get("path")),
                    metadata=_parse_metadata(item.get("metadata")),
                    content=decode_content(item.get("content")),
                ),
            )
        return cls(records=tuple(records), schema_version=version)


def _metadata_payload(metadata: Metadata) -> dict[str, int]:
    return {name: getattr(metadata, name) for name in METADATA_FIELDS}


def _parse_metadata(value: Any) -> Metadata:
    if not isinstance(value, dict):
        raise ValidationError("Invalid snapshot `metadata` value.")
    parsed: dict[str, int] = {}
    for name in METADATA_FIELDS:
        item = value.get(name)
        if not isinstance(item, int) or isinstance(item, bool):
            raise ValidationError(f"Invalid snapshot metadata `{name}` value.")
        parsed[name] = item
    return Metadata(**parsed)


def _json_path(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Invalid snapshot `path` value.")
    return value


def _json_content(value: Any) -> bytes:
    if not isinstance(value, str):
        raise ValidationError("Invalid snapshot `content` value.")
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ValidationError("Snapshot `content` is not valid hex.") from exc


def _cbor_path(value: Any) -> str:
    if not isinstance(value, bytes) or not value:
        raise ValidationError("Invalid snapshot `path` value.")
    return os.fsdecode(value)


def _cbor_content(value: Any) -> bytes:
    if not isinstance(value, bytes):
        raise ValidationError("Invalid snapshot `content` value.")
    return value


def _field_value(record: FileRecord, name: str) -> object:
    if name == "content":
        return record.content
    return getattr(record.metadata, name)


def _render(name: str, value: object) -> str:
    if name == "mode" and isinstance(value, int):
        return f"{stat.filemode(value)} ({value:o})"
    if isinstance(value, bytes):
        return value.hex()
    return str(value)


__all__ = [
    "ComparisonResult",
    "FileRecord",
    "Metadata",
    "RecordMismatch",
    "SCHEMA_VERSION",
    "Snapshot",
    "list_dir_all",
]
