"""Conformance harness: vector replay, comparison and the CLI."""

from __future__ import annotations

import hashlib
import json
import sys
from pathlib import Path

from click.testing import CliRunner

from htlc_escrow.config import EscrowConfig
from htlc_escrow.deployment import deploy
from htlc_escrow.errors import ErrorCode
from htlc_escrow.snapshot import deployment_to_json
from htlc_escrow.state_transition import Operation, OperationType, apply_op
from htlc_escrow.test_accounts import ALICE, BOB, DEPLOYER
from tools.fixtures_io import op_to_json, result_to_json
from tools.fixtures_to_vectors import case_to_vector, write_vectors

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "conformance" / "harness"))

from config import HarnessConfig  # noqa: E402
from runner import ConformanceHarness, main  # noqa: E402

SECRET = b"\x01" * 32
SECRET_HASH = hashlib.sha256(SECRET).digest()


def _vector(name: str, op: Operation) -> dict:
    d = deploy(EscrowConfig(owner=DEPLOYER, initial_height=100), balances={ALICE: 1_000})
    d.engine.create(ALICE, BOB, 500, 10, SECRET_HASH)
    pre = deployment_to_json(d)
    expected = result_to_json(apply_op(d, op))
    expected["post_state"] = deployment_to_json(d)
    return case_to_vector({"name": name, "pre_state": pre, "op": op_to_json(op), "expected": expected})


def _vectors() -> list[dict]:
    return [
        _vector("cancel_ok", Operation(OperationType.EMERGENCY_CANCEL, DEPLOYER, {"escrow_id": 1})),
        _vector("claim_early", Operation(OperationType.CLAIM, BOB, {"escrow_id": 1, "secret": SECRET})),
    ]


def test_harness_passes_recorded_vectors(tmp_path: Path) -> None:
    harness = ConformanceHarness(HarnessConfig(vector_dir=str(tmp_path), result_dir=str(tmp_path / "out")))
    for vector in _vectors():
        result = harness.run_vector(vector)
        assert result.passed, result.comparison


def test_harness_reports_divergence(tmp_path: Path) -> None:
    harness = ConformanceHarness(HarnessConfig(result_dir=str(tmp_path)))
    vector = _vectors()[1]
    vector["expected"]["error_code"] = int(ErrorCode.NOT_FOUND)

    result = harness.run_vector(vector)

    assert not result.passed
    fields = [d.field for d in result.comparison.divergences]
    assert fields == ["error_code"]


def test_harness_malformed_vector(tmp_path: Path) -> None:
    harness = ConformanceHarness(HarnessConfig(result_dir=str(tmp_path)))
    result = harness.run_vector({"name": "broken", "operation": {}})
    assert not result.passed
    assert result.error


def test_harness_null_payload_fails_vector_only(tmp_path: Path) -> None:
    broken = _vectors()[0]
    broken["name"] = "null_payload"
    broken["operation"]["payload"] = None
    suite = tmp_path / "escrow.yaml"
    write_vectors(suite, [broken, _vectors()[1]])
    harness = ConformanceHarness(HarnessConfig(result_dir=str(tmp_path / "out")))

    result = harness.run_suite(str(suite))

    assert result.total_tests == 2
    assert result.passed_tests == 1
    failed = result.test_results[0]
    assert not failed.passed
    assert "payload" in failed.error


def test_cli_writes_report(tmp_path: Path, monkeypatch) -> None:
    for var in ("VECTOR_DIR", "RESULT_DIR", "VERBOSE", "STOP_ON_FIRST_FAILURE"):
        monkeypatch.delenv(var, raising=False)
    vectors = tmp_path / "vectors"
    vectors.mkdir()
    write_vectors(vectors / "escrow.yaml", _vectors())
    results = tmp_path / "results"

    outcome = CliRunner().invoke(main, ["--vectors", str(vectors), "--result-dir", str(results)])

    assert outcome.exit_code == 0, outcome.output
    report = json.loads((results / "conformance-report.json").read_text())
    assert report["total_tests"] == 2
    assert report["total_failed"] == 0


def test_cli_fails_without_vectors(tmp_path: Path) -> None:
    outcome = CliRunner().invoke(main, ["--vectors", str(tmp_path), "--result-dir", str(tmp_path / "r")])
    assert outcome.exit_code == 1
