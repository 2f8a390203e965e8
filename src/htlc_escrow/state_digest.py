"""Canonical escrow state digest implementation (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

_OUTCOME_TAGS = {"open": 0, "claimed": 1, "refunded": 2}


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _fixed(value: str, size: int, name: str) -> bytes:
    raw = _hex_to_bytes(value)
    if len(raw) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


def compute_state_digest(snapshot: dict[str, Any]) -> str:
    """Compute state digest v1 from a deployment snapshot.

    Covers the height, both counters, every escrow (sorted by id) and every
    balance (sorted by address), encoded in canonical order and hashed with
    BLAKE3-256. The event log is not part of the digest.
    """
    buf = bytearray()
    buf += _u64_be(int(snapshot.get("height", 0)))
    buf += _u64_be(int(snapshot.get("next_id", 1)))
    buf += _u64_be(int(snapshot.get("total_escrows", 0)))

    escrows = sorted(snapshot.get("escrows", []), key=lambda e: int(e["id"]))
    buf += _u64_be(len(escrows))
    for e in escrows:
        buf += _u64_be(int(e["id"]))
        buf += _fixed(e["sender"], 32, "sender")
        buf += _fixed(e["recipient"], 32, "recipient")
        buf += _u64_be(int(e["amount"]))
        buf += _u64_be(int(e["unlock_height"]))
        buf += _fixed(e["secret_hash"], 32, "secret_hash")
        buf += _u64_be(int(e["created_height"]))
        buf += bytes([_OUTCOME_TAGS[e.get("outcome", "open")]])

    balances = []
    for b in snapshot.get("balances", []):
        balances.append((_fixed(b["address"], 32, "address"), int(b["balance"])))
    balances.sort(key=lambda x: x[0])
    buf += _u64_be(len(balances))
    for addr, bal in balances:
        buf += addr
        buf += _u64_be(bal)

    return blake3(buf).hexdigest()
