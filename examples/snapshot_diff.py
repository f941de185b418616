"""Record a tree snapshot now, and diff a tree against it later.

    python examples/snapshot_diff.py record DIR snapshot.cbor
    python examples/snapshot_diff.py check DIR snapshot.cbor
"""

import sys

from random_dir import Snapshot


def record(root: str, output: str) -> None:
    snapshot = Snapshot.capture(root)
    if output.endswith(".cbor"):
        snapshot.to_cbor(output)
    else:
        snapshot.to_json(output)
    print(f"recorded {len(snapshot.records)} entries")


def check(root: str, recorded: str) -> int:
    result = Snapshot.capture(root).compare(Snapshot.load(recorded), ignore=("dev",))
    for mismatch in result.mismatches:
        print(f"{mismatch.reason}: {mismatch.path} {mismatch.field or ''}")
    return 0 if result.ok else 1


if __name__ == "__main__":
    command, root, path = sys.argv[1:4]
    if command == "record":
        record(root, path)
    else:
        sys.exit(check(root, path))
