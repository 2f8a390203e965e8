"""Consume fixtures and validate them against the escrow engine."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from htlc_escrow.state_digest import compute_state_digest  # noqa: E402
from htlc_escrow.snapshot import deployment_to_json  # noqa: E402
from htlc_escrow.state_transition import apply_op  # noqa: E402
from fixtures_io import op_from_json, result_to_json, state_from_json  # noqa: E402


def check_state_cases(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        deployment = state_from_json(case["pre_state"])
        op = op_from_json(case["op"])
        result = result_to_json(apply_op(deployment, op))

        expected = case["expected"]
        if result["ok"] != expected["ok"]:
            failures.append(f"{case['name']}: ok_mismatch")
            continue

        if result["error"] != expected["error"]:
            failures.append(f"{case['name']}: error_mismatch")
            continue

        if result["value"] != expected.get("value"):
            failures.append(f"{case['name']}: value_mismatch")
            continue

        actual_digest = compute_state_digest(deployment_to_json(deployment))
        if actual_digest != compute_state_digest(expected["post_state"]):
            failures.append(f"{case['name']}: state_digest_mismatch")

    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"

    failures: list[str] = []
    for path in sorted(fixtures.rglob("*.json")):
        failures.extend(check_state_cases(path))

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All fixtures passed")


if __name__ == "__main__":
    main()
