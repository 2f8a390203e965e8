"""Escrow transition engine: create, claim, refund and emergency cancel.

Every mutating operation follows the same order: read the height once,
verify the full precondition set, move value through the ledger, and only
then commit the new record state. A failed precondition or ledger call
leaves the repository exactly as it was.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Iterator, Set

from .config import HASH_SIZE, IDENTITY_SIZE, MAX_SECRET_SIZE, U64_MAX, EscrowConfig
from .crypto.hash_algorithms import secret_matches
from .errors import ErrorCode, EscrowError
from .ledger import Ledger, LedgerError, LedgerErrorCode
from .oracle import HeightOracle
from .preconditions import height_reached, is_finalized
from .store import EscrowRepository
from .types import (
    EscrowEvent,
    EscrowId,
    EscrowOutcome,
    EscrowRecord,
    EventKind,
    Height,
    Identity,
)

logger = logging.getLogger(__name__)


def _is_uint(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_identity(value: object) -> bool:
    return isinstance(value, bytes) and len(value) == IDENTITY_SIZE


class EscrowEngine:
    """The only writer of an escrow repository."""

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
        self._create_lock = threading.RLock()
        self._creating = False
        self._locks: Dict[EscrowId, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._in_flight: Set[EscrowId] = set()

    # --- Serialization ---

    @contextmanager
    def _record_guard(self, eid: EscrowId) -> Iterator[None]:
        """Serialize transitions on one record.

        Locks exist only for stored records; records are never removed, so
        the lock map is bounded by the record count.
        """
        with self._locks_guard:
            if not self.repository.records.contains(eid):
                raise EscrowError(ErrorCode.NOT_FOUND, f"escrow {eid} not found")
            lock = self._locks.setdefault(eid, threading.RLock())
        with lock:
            # Holding the lock while the id is in flight means this thread re-entered.
            if eid in self._in_flight:
                raise EscrowError(ErrorCode.REENTRANT_CALL, f"escrow {eid} is mid-transition")
            self._in_flight.add(eid)
            try:
                yield
            finally:
                self._in_flight.discard(eid)

    @contextmanager
    def _create_guard(self) -> Iterator[None]:
        with self._create_lock:
            if self._creating:
                raise EscrowError(ErrorCode.REENTRANT_CALL, "create is mid-transition")
            self._creating = True
            try:
                yield
            finally:
                self._creating = False

    # --- Helpers ---

    def _load(self, eid: EscrowId) -> EscrowRecord:
        return self.repository.records.get(eid)

    def _transfer(
        self,
        source: Identity,
        destination: Identity,
        amount: int,
        insufficient: ErrorCode = ErrorCode.TRANSFER_FAILED,
    ) -> None:
        try:
            self.ledger.transfer(source, destination, amount)
        except LedgerError as exc:
            code = insufficient if exc.code == LedgerErrorCode.INSUFFICIENT_FUNDS else ErrorCode.TRANSFER_FAILED
            raise EscrowError(code, f"ledger transfer failed: {exc}") from exc

    def _commit_outcome(
        self,
        record: EscrowRecord,
        outcome: EscrowOutcome,
        kind: EventKind,
        actor: Identity,
        height: Height,
    ) -> EscrowRecord:
        final = replace(record, outcome=outcome, finalized_height=height)
        self.repository.records.update(record.id, final)
        self.repository.events.append(
            EscrowEvent(kind=kind, escrow_id=record.id, actor=actor, amount=record.amount, height=height)
        )
        return final

    def _require_open(self, record: EscrowRecord) -> None:
        if is_finalized(record):
            raise EscrowError(ErrorCode.ALREADY_FINALIZED, f"escrow {record.id} already {record.outcome.value}")

    # --- CREATE ---

    def _verify_create(
        self,
        caller: Identity,
        recipient: Identity,
        amount: int,
        blocks_ahead: int,
        secret_hash: bytes,
        height: Height,
    ) -> None:
        if not _is_uint(amount) or amount == 0:
            raise EscrowError(ErrorCode.INVALID_AMOUNT, "escrow amount must be > 0")
        if amount > U64_MAX:
            raise EscrowError(ErrorCode.INVALID_AMOUNT, "escrow amount exceeds u64 max")

        if not _is_uint(blocks_ahead) or blocks_ahead == 0:
            raise EscrowError(ErrorCode.INVALID_HEIGHT, "blocks_ahead must be > 0")
        if height + blocks_ahead > U64_MAX:
            raise EscrowError(ErrorCode.INVALID_HEIGHT, "unlock height exceeds u64 max")

        if not isinstance(secret_hash, (bytes, bytearray)) or len(secret_hash) != HASH_SIZE:
            raise EscrowError(ErrorCode.INVALID_HASH, f"secret_hash must be {HASH_SIZE} bytes")

        if not _is_identity(caller):
            raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"caller must be {IDENTITY_SIZE} bytes")
        if not _is_identity(recipient):
            raise EscrowError(ErrorCode.INVALID_PAYLOAD, f"recipient must be {IDENTITY_SIZE} bytes")

        # The holding account cannot fund or receive an escrow it backs.
        if caller == self.config.holding_account:
            raise EscrowError(ErrorCode.NOT_AUTHORIZED, "holding account cannot create escrows")
        if recipient == self.config.holding_account:
            raise EscrowError(ErrorCode.INVALID_PAYLOAD, "recipient cannot be the holding account")

        if self.ledger.balance_of(caller) < amount:
            raise EscrowError(ErrorCode.INSUFFICIENT_BALANCE, "insufficient balance")

    def create(
        self,
        caller: Identity,
        recipient: Identity,
        amount: int,
        blocks_ahead: int,
        secret_hash: bytes,
    ) -> EscrowId:
        """Lock `amount` from `caller` for `recipient`; returns the new escrow id."""
        with self._create_guard():
            height = self.oracle.current_height()
            try:
                self._verify_create(caller, recipient, amount, blocks_ahead, secret_hash, height)
                eid = self.repository.allocator.peek()
                if self.repository.records.contains(eid):
                    raise EscrowError(ErrorCode.DUPLICATE_ID, f"escrow {eid} already exists")

                self._transfer(
                    caller, self.config.holding_account, amount,
                    insufficient=ErrorCode.INSUFFICIENT_BALANCE,
                )
            except EscrowError as exc:
                logger.debug(f"create rejected at height {height}: {exc}")
                raise

            record = EscrowRecord(
                id=eid,
                sender=caller,
                recipient=recipient,
                amount=amount,
                unlock_height=height + blocks_ahead,
                secret_hash=bytes(secret_hash),
                created_height=height,
            )
            self.repository.records.insert(eid, record)
            self.repository.allocator.next()
            self.repository.total_escrows += 1
            self.repository.events.append(
                EscrowEvent(kind=EventKind.CREATED, escrow_id=eid, actor=caller, amount=amount, height=height)
            )

        logger.info(f"escrow {eid} created: amount={amount} unlock_height={record.unlock_height}")
        return eid

    # --- CLAIM ---

    def _verify_claim(self, record: EscrowRecord, caller: Identity, secret: bytes, height: Height) -> None:
        if caller != record.recipient:
            raise EscrowError(ErrorCode.NOT_AUTHORIZED, "caller is not the escrow recipient")
        self._require_open(record)
        if not height_reached(record, height):
            raise EscrowError(
                ErrorCode.HEIGHT_NOT_REACHED,
                f"unlock height {record.unlock_height} not reached (height {height})",
            )
        if not isinstance(secret, (bytes, bytearray)) or len(secret) > MAX_SECRET_SIZE:
            raise EscrowError(ErrorCode.INVALID_SECRET, f"secret must be at most {MAX_SECRET_SIZE} bytes")
        if not secret_matches(secret, record.secret_hash, self.config.hash_algorithm):
            raise EscrowError(ErrorCode.INVALID_SECRET, "secret does not match commitment")

    def claim(self, caller: Identity, eid: EscrowId, secret: bytes) -> EscrowRecord:
        try:
            with self._record_guard(eid):
                height = self.oracle.current_height()
                record = self._load(eid)
                self._verify_claim(record, caller, secret, height)
                self._transfer(self.config.holding_account, record.recipient, record.amount)
                final = self._commit_outcome(record, EscrowOutcome.CLAIMED, EventKind.CLAIMED, caller, height)
        except EscrowError as exc:
            logger.debug(f"claim of escrow {eid} rejected: {exc}")
            raise

        logger.info(f"escrow {eid} claimed at height {height}")
        return final

    # --- REFUND ---

    def _verify_refund(self, record: EscrowRecord, caller: Identity, height: Height) -> None:
        if caller != record.sender:
            raise EscrowError(ErrorCode.NOT_AUTHORIZED, "caller is not the escrow sender")
        self._require_open(record)
        if not height_reached(record, height):
            raise EscrowError(
                ErrorCode.HEIGHT_NOT_REACHED,
                f"unlock height {record.unlock_height} not reached (height {height})",
            )

    def refund(self, caller: Identity, eid: EscrowId) -> EscrowRecord:
        try:
            with self._record_guard(eid):
                height = self.oracle.current_height()
                record = self._load(eid)
                self._verify_refund(record, caller, height)
                self._transfer(self.config.holding_account, record.sender, record.amount)
                final = self._commit_outcome(record, EscrowOutcome.REFUNDED, EventKind.REFUNDED, caller, height)
        except EscrowError as exc:
            logger.debug(f"refund of escrow {eid} rejected: {exc}")
            raise

        logger.info(f"escrow {eid} refunded at height {height}")
        return final

    # --- EMERGENCY CANCEL ---

    def _verify_cancel(self, record: EscrowRecord, height: Height) -> None:
        self._require_open(record)
        if height >= record.unlock_height:
            raise EscrowError(
                ErrorCode.ALREADY_EXPIRED,
                f"cancel window closed at height {record.unlock_height} (height {height})",
            )

    def emergency_cancel(self, caller: Identity, eid: EscrowId) -> EscrowRecord:
        try:
            # Authorization comes before any record lookup.
            if caller != self.config.owner:
                raise EscrowError(ErrorCode.NOT_AUTHORIZED, "caller is not the privileged owner")
            with self._record_guard(eid):
                height = self.oracle.current_height()
                record = self._load(eid)
                self._verify_cancel(record, height)
                self._transfer(self.config.holding_account, record.sender, record.amount)
                final = self._commit_outcome(record, EscrowOutcome.REFUNDED, EventKind.CANCELLED, caller, height)
        except EscrowError as exc:
            logger.debug(f"emergency cancel of escrow {eid} rejected: {exc}")
            raise

        logger.warning(f"escrow {eid} cancelled by owner at height {height}")
        return final
