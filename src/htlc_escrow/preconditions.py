"""Transition predicates over (record, current height).

Claim and refund share the same height gate and differ only in who may call
and what proof is required. Cancel is legal strictly before the unlock height,
so at any height exactly one of {cancel} or {claim, refund} is reachable.
"""

from __future__ import annotations

from .types import EscrowRecord, Height


def is_finalized(record: EscrowRecord) -> bool:
    return record.claimed or record.refunded


def height_reached(record: EscrowRecord, height: Height) -> bool:
    return height >= record.unlock_height


def can_claim(record: EscrowRecord, height: Height) -> bool:
    return not is_finalized(record) and height_reached(record, height)


def can_refund(record: EscrowRecord, height: Height) -> bool:
    return not is_finalized(record) and height_reached(record, height)


def can_cancel(record: EscrowRecord, height: Height) -> bool:
    return not is_finalized(record) and height < record.unlock_height
