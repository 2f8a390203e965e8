"""Pytest hooks to generate escrow fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from htlc_escrow.deployment import EscrowDeployment
from htlc_escrow.state_transition import Operation, TransitionResult, apply_op
from tools.fixtures_io import op_to_json, result_to_json, state_to_json

_STATE_CASES: dict[str, list[dict[str, Any]]] = {}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def state_test_group() -> Callable[[str, str, EscrowDeployment, Operation], TransitionResult]:
    """Apply one operation to a deployment and collect it as a fixture case.

    The deployment is mutated in place; the result is returned so tests can
    assert on it.
    """

    def _state_test_group(
        rel_path: str, name: str, deployment: EscrowDeployment, op: Operation
    ) -> TransitionResult:
        pre_state = state_to_json(deployment)
        result = apply_op(deployment, op)
        expected = result_to_json(result)
        expected["post_state"] = state_to_json(deployment)
        _STATE_CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "pre_state": pre_state,
                "op": op_to_json(op),
                "expected": expected,
            }
        )
        return result

    return _state_test_group


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _STATE_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))
