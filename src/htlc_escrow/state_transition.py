"""Operation dispatch for the escrow engine.

Operations are processed one at a time in submission order. A failed
operation leaves the deployment unchanged and does not affect the
operations after it in the same block.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import IDENTITY_SIZE
from .deployment import EscrowDeployment
from .errors import ErrorCode, EscrowError
from .oracle import ManualHeightOracle
from .types import Identity


class OperationType(Enum):
    CREATE = "create"
    CLAIM = "claim"
    REFUND = "refund"
    EMERGENCY_CANCEL = "emergency_cancel"


@dataclass
class Operation:
    op_type: OperationType
    caller: Identity
    payload: Dict[str, Any] = field(default_factory=dict)


class TransitionResult:
    """Thin wrapper for operation results."""

    def __init__(self, ok: bool, error: Optional[EscrowError] = None, value: Any = None):
        self.ok = ok
        self.error = error
        self.value = value

    @classmethod
    def success(cls, value: Any = None) -> "TransitionResult":
        return cls(True, None, value)

    @classmethod
    def failure(cls, error: EscrowError) -> "TransitionResult":
        return cls(False, error)

    def __repr__(self) -> str:
        if self.ok:
            return f"TransitionResult(ok, value={self.value!r})"
        return f"TransitionResult(failed, error={self.error})"


def _require(p: Dict[str, Any], key: str) -> Any:
    if key not in p:
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"missing payload field: {key}")
    return p[key]


def _escrow_id(p: Dict[str, Any]) -> int:
    eid = _require(p, "escrow_id")
    if not isinstance(eid, int) or isinstance(eid, bool) or eid < 0:
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, "escrow_id must be an unsigned integer")
    return eid


def _dispatch(deployment: EscrowDeployment, op: Operation) -> Any:
    p = op.payload
    if not isinstance(p, dict):
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, "operation payload must be dict")

    if not isinstance(op.caller, bytes) or len(op.caller) != IDENTITY_SIZE:
        raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"caller must be {IDENTITY_SIZE} bytes")

    engine = deployment.engine
    ot = op.op_type
    if ot == OperationType.CREATE:
        return engine.create(
            op.caller,
            _require(p, "recipient"),
            _require(p, "amount"),
            _require(p, "blocks_ahead"),
            _require(p, "secret_hash"),
        )
    if ot == OperationType.CLAIM:
        return engine.claim(op.caller, _escrow_id(p), _require(p, "secret"))
    if ot == OperationType.REFUND:
        return engine.refund(op.caller, _escrow_id(p))
    if ot == OperationType.EMERGENCY_CANCEL:
        return engine.emergency_cancel(op.caller, _escrow_id(p))

    raise EscrowError(ErrorCode.INVALID_TYPE, f"unsupported operation type: {ot}")


def apply_op(deployment: EscrowDeployment, op: Operation) -> TransitionResult:
    """Apply a single operation, capturing escrow errors as a failed result."""
    try:
        value = _dispatch(deployment, op)
    except EscrowError as exc:
        return TransitionResult.failure(exc)
    return TransitionResult.success(value)


def apply_block(deployment: EscrowDeployment, ops: List[Operation]) -> List[TransitionResult]:
    """Apply operations in order at the current height, then advance by one.

    Only deployments driven by a ManualHeightOracle can be advanced here.
    """
    oracle = deployment.oracle
    if not isinstance(oracle, ManualHeightOracle):
        raise EscrowError(ErrorCode.NOT_IMPLEMENTED, "apply_block needs a manually advanced oracle")
    results = [apply_op(deployment, op) for op in ops]
    oracle.advance(1)
    return results
