"""Escrow record storage: the record store, id allocator and repository."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .config import FIRST_ESCROW_ID
from .errors import ErrorCode, EscrowError
from .types import EscrowEvent, EscrowId, EscrowRecord


class IdAllocator:
    """Issues strictly increasing escrow ids starting at 1."""

    def __init__(self, next_id: int = FIRST_ESCROW_ID):
        if next_id < FIRST_ESCROW_ID:
            raise ValueError(f"next_id must be >= {FIRST_ESCROW_ID}")
        self._next_id = next_id

    def peek(self) -> EscrowId:
        return self._next_id

    def next(self) -> EscrowId:
        eid = self._next_id
        self._next_id += 1
        return eid


class RecordStore:
    """Keyed escrow records. Pure data access, no transition policy."""

    def __init__(self) -> None:
        self._records: Dict[EscrowId, EscrowRecord] = {}

    def insert(self, eid: EscrowId, record: EscrowRecord) -> None:
        if eid in self._records:
            raise EscrowError(ErrorCode.DUPLICATE_ID, f"escrow {eid} already exists")
        self._records[eid] = record

    def get(self, eid: EscrowId) -> EscrowRecord:
        record = self._records.get(eid)
        if record is None:
            raise EscrowError(ErrorCode.NOT_FOUND, f"escrow {eid} not found")
        return record

    def find(self, eid: EscrowId) -> Optional[EscrowRecord]:
        return self._records.get(eid)

    def update(self, eid: EscrowId, record: EscrowRecord) -> None:
        if eid not in self._records:
            raise EscrowError(ErrorCode.NOT_FOUND, f"escrow {eid} not found")
        self._records[eid] = record

    def contains(self, eid: EscrowId) -> bool:
        return eid in self._records

    def ids(self) -> List[EscrowId]:
        return sorted(self._records)

    def __iter__(self) -> Iterator[EscrowRecord]:
        for eid in self.ids():
            yield self._records[eid]

    def __len__(self) -> int:
        return len(self._records)


@dataclass
class EscrowRepository:
    """Everything an escrow deployment persists.

    Owned by one deployment and injected into its engine and query layer;
    the engine is the only writer.
    """
    records: RecordStore = field(default_factory=RecordStore)
    allocator: IdAllocator = field(default_factory=IdAllocator)
    total_escrows: int = 0
    events: List[EscrowEvent] = field(default_factory=list)

    @property
    def next_id(self) -> EscrowId:
        return self.allocator.peek()
