"""Core types for the HTLC escrow.

An escrow record moves from OPEN to exactly one terminal outcome. CLAIMED is
reached by the recipient revealing the preimage; REFUNDED is reached either by
the sender after the unlock height or by the privileged owner before it. The
event log keeps the two refund paths apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import NULL_IDENTITY

Identity = bytes
Height = int
EscrowId = int


class EscrowOutcome(Enum):
    OPEN = "open"
    CLAIMED = "claimed"
    REFUNDED = "refunded"


class EventKind(Enum):
    CREATED = "created"
    CLAIMED = "claimed"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class EscrowRecord:
    id: EscrowId
    sender: Identity
    recipient: Identity
    amount: int
    unlock_height: Height
    secret_hash: bytes
    created_height: Height
    outcome: EscrowOutcome = EscrowOutcome.OPEN
    finalized_height: Optional[Height] = None

    @property
    def claimed(self) -> bool:
        return self.outcome is EscrowOutcome.CLAIMED

    @property
    def refunded(self) -> bool:
        return self.outcome is EscrowOutcome.REFUNDED


@dataclass(frozen=True)
class EscrowEvent:
    kind: EventKind
    escrow_id: EscrowId
    actor: Identity
    amount: int
    height: Height


# --- Query projections ---


@dataclass(frozen=True)
class EscrowStatus:
    exists: bool
    claimed: bool
    refunded: bool
    height_reached: bool
    sender: Identity
    recipient: Identity
    amount: int

    @classmethod
    def missing(cls) -> "EscrowStatus":
        return cls(
            exists=False,
            claimed=False,
            refunded=False,
            height_reached=False,
            sender=NULL_IDENTITY,
            recipient=NULL_IDENTITY,
            amount=0,
        )


@dataclass(frozen=True)
class EscrowStats:
    total_escrows: int
    holding_balance: int
    current_height: Height
    privileged_owner: Identity


@dataclass(frozen=True)
class OutcomeCounters:
    open: int = 0
    claimed: int = 0
    refunded: int = 0

    @property
    def total(self) -> int:
        return self.open + self.claimed + self.refunded
