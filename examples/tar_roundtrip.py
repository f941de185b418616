"""Fuzz Python's tarfile: archive random trees, extract them, compare snapshots."""

import sys
import tarfile
import tempfile
from pathlib import Path

from random_dir import (
    ExhaustedInputError,
    FilesystemOperationError,
    FileType,
    GeneratorConfig,
    Snapshot,
    Unstructured,
    generate,
)

CONFIG = GeneratorConfig(
    printable_names=True,
    file_types=frozenset(
        {FileType.REGULAR, FileType.DIRECTORY, FileType.FIFO, FileType.SOCKET, FileType.SYMLINK, FileType.HARD_LINK},
    ),
)


def roundtrip(seed: int) -> None:
    try:
        tree = generate(Unstructured.from_seed(seed), CONFIG)
    except (ExhaustedInputError, FilesystemOperationError) as exc:
        print(f"seed {seed}: skipped ({exc.code})")
        return

    with tree, tempfile.TemporaryDirectory() as scratch:
        expected = Snapshot.capture(tree.path)
        archive = Path(scratch) / "tree.tar"
        with tarfile.open(archive, "w") as tar:
            for entry in sorted(tree.path.iterdir()):
                tar.add(entry, arcname=entry.name)
        extracted = Path(scratch) / "out"
        with tarfile.open(archive) as tar:
            tar.extractall(extracted, filter="fully_trusted")

        result = Snapshot.capture(extracted).compare(expected, ignore=("dev",))
        if result.ok:
            print(f"seed {seed}: ok ({len(expected.records)} entries)")
            return
        print(f"seed {seed}: {len(result.mismatches)} mismatches")
        for mismatch in result.mismatches:
            print(f"  {mismatch.reason} {mismatch.path} {mismatch.field or ''}")


def main(seeds: int = 20) -> None:
    for seed in range(seeds):
        roundtrip(seed)


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 20)
