"""HTLC escrow error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    PROOF = 0x05
    LEDGER = 0x06
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_AMOUNT = 0x0100
    INVALID_HEIGHT = 0x0101
    INVALID_HASH = 0x0102
    INVALID_PAYLOAD = 0x0103
    INVALID_TYPE = 0x0104

    # Authorization
    NOT_AUTHORIZED = 0x0200

    # Resource
    INSUFFICIENT_BALANCE = 0x0300

    # State
    NOT_FOUND = 0x0400
    DUPLICATE_ID = 0x0401
    ALREADY_FINALIZED = 0x0402
    HEIGHT_NOT_REACHED = 0x0403
    ALREADY_EXPIRED = 0x0404

    # Proof
    INVALID_SECRET = 0x0500

    # Ledger
    TRANSFER_FAILED = 0x0600

    # Internal
    REENTRANT_CALL = 0xFF00
    NOT_IMPLEMENTED = 0xFF01
    INTERNAL_ERROR = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class EscrowError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__suppress_context__"))
_frozen_setattr = EscrowError.__setattr__


def _escrow_error_setattr(self: EscrowError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


EscrowError.__setattr__ = _escrow_error_setattr  # type: ignore[method-assign]


def err(code: ErrorCode, message: str) -> EscrowError:
    return EscrowError(code=code, message=message)
