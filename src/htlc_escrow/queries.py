"""Read-only escrow projections. Queries never raise for a missing escrow."""

from __future__ import annotations

from typing import List, Optional

from .config import EscrowConfig
from .ledger import Ledger
from .oracle import HeightOracle
from .preconditions import can_cancel, can_claim, can_refund, height_reached
from .store import EscrowRepository
from .types import (
    EscrowEvent,
    EscrowId,
    EscrowOutcome,
    EscrowRecord,
    EscrowStats,
    EscrowStatus,
    OutcomeCounters,
)


class EscrowQueries:
    def __init__(
        self,
        repository: EscrowRepository,
        ledger: Ledger,
        oracle: HeightOracle,
        config: EscrowConfig,
    ):
        self.repository = repository
        self.ledger = ledger
        self.oracle = oracle
        self.config = config

    def get(self, eid: EscrowId) -> Optional[EscrowRecord]:
        return self.repository.records.find(eid)

    def can_claim(self, eid: EscrowId) -> bool:
        record = self.get(eid)
        return record is not None and can_claim(record, self.oracle.current_height())

    def can_refund(self, eid: EscrowId) -> bool:
        record = self.get(eid)
        return record is not None and can_refund(record, self.oracle.current_height())

    def can_cancel(self, eid: EscrowId) -> bool:
        record = self.get(eid)
        return record is not None and can_cancel(record, self.oracle.current_height())

    def status(self, eid: EscrowId) -> EscrowStatus:
        record = self.get(eid)
        if record is None:
            return EscrowStatus.missing()
        return EscrowStatus(
            exists=True,
            claimed=record.claimed,
            refunded=record.refunded,
            height_reached=height_reached(record, self.oracle.current_height()),
            sender=record.sender,
            recipient=record.recipient,
            amount=record.amount,
        )

    def stats(self) -> EscrowStats:
        return EscrowStats(
            total_escrows=self.repository.total_escrows,
            holding_balance=self.ledger.balance_of(self.config.holding_account),
            current_height=self.oracle.current_height(),
            privileged_owner=self.config.owner,
        )

    def counters(self) -> OutcomeCounters:
        counts = {outcome: 0 for outcome in EscrowOutcome}
        for record in self.repository.records:
            counts[record.outcome] += 1
        return OutcomeCounters(
            open=counts[EscrowOutcome.OPEN],
            claimed=counts[EscrowOutcome.CLAIMED],
            refunded=counts[EscrowOutcome.REFUNDED],
        )

    def list_ids(self, offset: int = 0, limit: int = 100) -> List[EscrowId]:
        if offset < 0 or limit <= 0:
            return []
        return self.repository.records.ids()[offset:offset + limit]

    def events(self, eid: Optional[EscrowId] = None) -> List[EscrowEvent]:
        if eid is None:
            return list(self.repository.events)
        return [e for e in self.repository.events if e.escrow_id == eid]
