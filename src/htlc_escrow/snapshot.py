"""JSON snapshots of an escrow deployment.

A snapshot carries the persisted escrow layout (records keyed by id plus the
next-id and total-created counters), the event log, the deployment settings,
the oracle height and, for in-memory ledgers, every balance. Identities and
digests are hex encoded.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .config import DEFAULT_HASH_ALGORITHM, EscrowConfig
from .deployment import EscrowDeployment, deploy
from .ledger import InMemoryLedger
from .oracle import ManualHeightOracle
from .store import EscrowRepository, IdAllocator
from .types import EscrowEvent, EscrowOutcome, EscrowRecord, EventKind

SNAPSHOT_VERSION = 1


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def record_to_json(r: EscrowRecord) -> Dict[str, Any]:
    return {
        "id": r.id,
        "sender": _bytes_to_hex(r.sender),
        "recipient": _bytes_to_hex(r.recipient),
        "amount": r.amount,
        "unlock_height": r.unlock_height,
        "secret_hash": _bytes_to_hex(r.secret_hash),
        "created_height": r.created_height,
        "outcome": r.outcome.value,
        "finalized_height": r.finalized_height,
    }


def record_from_json(data: Dict[str, Any]) -> EscrowRecord:
    return EscrowRecord(
        id=data["id"],
        sender=_hex_to_bytes(data["sender"]),
        recipient=_hex_to_bytes(data["recipient"]),
        amount=data["amount"],
        unlock_height=data["unlock_height"],
        secret_hash=_hex_to_bytes(data["secret_hash"]),
        created_height=data["created_height"],
        outcome=EscrowOutcome(data.get("outcome", EscrowOutcome.OPEN.value)),
        finalized_height=data.get("finalized_height"),
    )


def event_to_json(e: EscrowEvent) -> Dict[str, Any]:
    return {
        "kind": e.kind.value,
        "escrow_id": e.escrow_id,
        "actor": _bytes_to_hex(e.actor),
        "amount": e.amount,
        "height": e.height,
    }


def event_from_json(data: Dict[str, Any]) -> EscrowEvent:
    return EscrowEvent(
        kind=EventKind(data["kind"]),
        escrow_id=data["escrow_id"],
        actor=_hex_to_bytes(data["actor"]),
        amount=data["amount"],
        height=data["height"],
    )


def deployment_to_json(d: EscrowDeployment) -> Dict[str, Any]:
    repo = d.repository
    result: Dict[str, Any] = {
        "version": SNAPSHOT_VERSION,
        "config": {
            "owner": _bytes_to_hex(d.config.owner),
            "holding_account": _bytes_to_hex(d.config.holding_account),
            "hash_algorithm": d.config.hash_algorithm,
        },
        "height": d.oracle.current_height(),
        "next_id": repo.next_id,
        "total_escrows": repo.total_escrows,
        "escrows": [record_to_json(r) for r in repo.records],
        "events": [event_to_json(e) for e in repo.events],
    }
    if isinstance(d.ledger, InMemoryLedger):
        result["balances"] = [
            {"address": _bytes_to_hex(addr), "balance": bal}
            for addr, bal in sorted(d.ledger.balances().items())
        ]
    return result


def deployment_from_json(data: Dict[str, Any]) -> EscrowDeployment:
    version = data.get("version", SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"unsupported snapshot version: {version}")

    cfg = data.get("config", {})
    height = data.get("height", 0)
    config = EscrowConfig(
        owner=_hex_to_bytes(cfg["owner"]),
        holding_account=_hex_to_bytes(cfg["holding_account"]),
        hash_algorithm=cfg.get("hash_algorithm", DEFAULT_HASH_ALGORITHM),
        initial_height=height,
    )

    repository = EscrowRepository(
        allocator=IdAllocator(data.get("next_id", 1)),
        total_escrows=data.get("total_escrows", 0),
    )
    for r in data.get("escrows", []):
        record = record_from_json(r)
        repository.records.insert(record.id, record)
    repository.events.extend(event_from_json(e) for e in data.get("events", []))

    balances = {
        _hex_to_bytes(b["address"]): b["balance"]
        for b in data.get("balances", [])
    }
    return deploy(
        config=config,
        ledger=InMemoryLedger(balances),
        oracle=ManualHeightOracle(height),
        repository=repository,
    )


def save(d: EscrowDeployment, path: Path) -> None:
    path.write_text(json.dumps(deployment_to_json(d), indent=2))


def load(path: Path) -> EscrowDeployment:
    return deployment_from_json(json.loads(path.read_text()))
