"""Helpers to serialize/deserialize escrow fixtures."""

from __future__ import annotations

from typing import Any

from htlc_escrow.deployment import EscrowDeployment
from htlc_escrow.snapshot import deployment_from_json, deployment_to_json
from htlc_escrow.state_transition import Operation, OperationType, TransitionResult
from htlc_escrow.types import EscrowRecord

# Payload fields carried as hex on the wire.
_BYTES_FIELDS = ("recipient", "secret_hash", "secret")


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def state_to_json(deployment: EscrowDeployment) -> dict[str, Any]:
    return deployment_to_json(deployment)


def state_from_json(data: dict[str, Any]) -> EscrowDeployment:
    return deployment_from_json(data)


def op_to_json(op: Operation) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key, value in op.payload.items():
        if key in _BYTES_FIELDS and isinstance(value, (bytes, bytearray)):
            payload[key] = _bytes_to_hex(bytes(value))
        else:
            payload[key] = value
    return {
        "op_type": op.op_type.value,
        "caller": _bytes_to_hex(op.caller),
        "payload": payload,
    }


def op_from_json(data: dict[str, Any]) -> Operation:
    raw = data.get("payload", {})
    if not isinstance(raw, dict):
        raise ValueError("operation payload must be a mapping")
    payload: dict[str, Any] = {}
    for key, value in raw.items():
        if key in _BYTES_FIELDS and isinstance(value, str):
            payload[key] = _hex_to_bytes(value)
        else:
            payload[key] = value
    return Operation(
        op_type=OperationType(data["op_type"]),
        caller=_hex_to_bytes(data["caller"]),
        payload=payload,
    )


def result_to_json(result: TransitionResult) -> dict[str, Any]:
    value = result.value
    if isinstance(value, EscrowRecord):
        value = value.id
    return {
        "ok": result.ok,
        "error": result.error.code.name if result.error else None,
        "value": value,
    }
