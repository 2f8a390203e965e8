#!/usr/bin/env python3
"""Convert escrow fixtures into runnable YAML vectors.

Each fixture case becomes a vector carrying the pre-state, the operation and
the expected result, plus the expected post-state digest so consumers can
compare state without diffing full snapshots.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from htlc_escrow.errors import ErrorCode  # noqa: E402
from htlc_escrow.state_digest import compute_state_digest  # noqa: E402


def dump_vectors(vectors: list[dict[str, Any]]) -> str:
    """Render vectors as a `test_vectors` YAML document, keys in vector order."""
    return yaml.safe_dump({"test_vectors": vectors}, sort_keys=False, width=4096)


def write_vectors(path: Path, vectors: list[dict[str, Any]]) -> None:
    path.write_text(dump_vectors(vectors))


def _map_error_code(name: str | None) -> int:
    if not name:
        return int(ErrorCode.SUCCESS)
    try:
        return int(ErrorCode[name])
    except KeyError:
        return int(ErrorCode.INTERNAL_ERROR)


def case_to_vector(case: dict[str, Any]) -> dict[str, Any]:
    expected = case.get("expected", {})
    post_state = expected.get("post_state")
    return {
        "name": case.get("name", ""),
        "runnable": True,
        "pre_state": case["pre_state"],
        "operation": case["op"],
        "expected": {
            "ok": expected.get("ok", False),
            "error": expected.get("error"),
            "error_code": _map_error_code(expected.get("error")),
            "value": expected.get("value"),
            "state_digest": compute_state_digest(post_state) if post_state else None,
        },
    }


def convert_fixtures(fixtures: Path, vectors: Path) -> int:
    """Write one YAML vector file per fixture file; returns the file count."""
    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")

    vectors.mkdir(parents=True, exist_ok=True)

    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        data = json.loads(path.read_text())
        cases = data.get("cases") if isinstance(data, dict) else None
        if not isinstance(cases, list):
            continue

        dest = vectors / path.relative_to(fixtures).with_suffix(".yaml")
        dest.parent.mkdir(parents=True, exist_ok=True)
        write_vectors(dest, [case_to_vector(c) for c in cases])
        count += 1
    return count


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert fixtures to vectors")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=str(ROOT / "vectors"))
    args = parser.parse_args()

    vectors = Path(args.vectors).resolve()
    count = convert_fixtures(Path(args.fixtures).resolve(), vectors)
    print(f"Wrote {count} vector files to {vectors}")


if __name__ == "__main__":
    main()
