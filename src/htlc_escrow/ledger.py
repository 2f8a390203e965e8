"""Value-transfer ledger interface and the in-memory reference ledger."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Mapping, Optional

from .config import U64_MAX
from .types import Identity


class LedgerErrorCode(IntEnum):
    INSUFFICIENT_FUNDS = 0x01
    TRANSFER_FAILED = 0x02
    BALANCE_OVERFLOW = 0x03


@dataclass(frozen=True)
class LedgerError(Exception):
    code: LedgerErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#04x}): {self.message}"


_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__suppress_context__"))
_frozen_setattr = LedgerError.__setattr__


def _ledger_error_setattr(self: LedgerError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


LedgerError.__setattr__ = _ledger_error_setattr  # type: ignore[method-assign]


def apply_balance_change(balance: int, delta: int) -> int:
    """Apply +/- balance with u64 bounds."""
    new_balance = balance + delta
    if new_balance < 0:
        raise LedgerError(LedgerErrorCode.INSUFFICIENT_FUNDS, "negative balance")
    if new_balance > U64_MAX:
        raise LedgerError(LedgerErrorCode.BALANCE_OVERFLOW, "balance overflow")
    return new_balance


class Ledger(ABC):
    """Moves fungible balance between accounts, all-or-nothing."""

    @abstractmethod
    def transfer(self, source: Identity, destination: Identity, amount: int) -> None:
        """Move `amount` or raise LedgerError leaving both balances untouched."""

    @abstractmethod
    def balance_of(self, account: Identity) -> int:
        ...


class InMemoryLedger(Ledger):
    def __init__(self, balances: Optional[Mapping[Identity, int]] = None):
        self._balances: Dict[Identity, int] = {}
        self._lock = threading.Lock()
        for account, amount in (balances or {}).items():
            self._balances[account] = apply_balance_change(0, amount)

    def transfer(self, source: Identity, destination: Identity, amount: int) -> None:
        if amount <= 0:
            raise LedgerError(LedgerErrorCode.TRANSFER_FAILED, "transfer amount must be > 0")
        with self._lock:
            src_balance = self._balances.get(source, 0)
            if src_balance < amount:
                raise LedgerError(LedgerErrorCode.INSUFFICIENT_FUNDS, "insufficient funds")
            if source == destination:
                return
            new_src = apply_balance_change(src_balance, -amount)
            new_dst = apply_balance_change(self._balances.get(destination, 0), amount)
            self._balances[source] = new_src
            self._balances[destination] = new_dst

    def balance_of(self, account: Identity) -> int:
        return self._balances.get(account, 0)

    def credit(self, account: Identity, amount: int) -> None:
        """Mint balance into an account (test and tooling setup)."""
        with self._lock:
            self._balances[account] = apply_balance_change(self._balances.get(account, 0), amount)

    def balances(self) -> Dict[Identity, int]:
        return dict(self._balances)
