"""End-to-end escrow lifecycles and block processing."""

from __future__ import annotations

import hashlib
import random

import pytest

from htlc_escrow.config import DEFAULT_HOLDING_ACCOUNT, EscrowConfig
from htlc_escrow.deployment import EscrowDeployment, deploy
from htlc_escrow.errors import ErrorCode, EscrowError
from htlc_escrow.oracle import HeightOracle
from htlc_escrow.state_transition import Operation, OperationType, apply_block, apply_op
from htlc_escrow.test_accounts import ALICE, BOB, CAROL, DAVE, DEPLOYER, EVE
from htlc_escrow.types import EscrowOutcome

S = b"\x01" * 32
H = hashlib.sha256(S).digest()
R = BOB


def _deployment(height: int = 100) -> EscrowDeployment:
    return deploy(
        EscrowConfig(owner=DEPLOYER, initial_height=height),
        balances={ALICE: 10_000_000, DAVE: 1_000_000},
    )


def _create(sender: bytes, amount: int, blocks_ahead: int, recipient: bytes = R) -> Operation:
    return Operation(
        OperationType.CREATE,
        sender,
        {"recipient": recipient, "amount": amount, "blocks_ahead": blocks_ahead, "secret_hash": H},
    )


def test_create_then_claim_with_matching_preimage() -> None:
    d = _deployment()

    eid = d.engine.create(ALICE, R, 1_000_000, 10, H)
    assert eid == 1
    assert d.queries.get(1).unlock_height == 110

    with pytest.raises(EscrowError) as exc:
        d.engine.create(ALICE, R, 0, 10, H)
    assert exc.value.code == ErrorCode.INVALID_AMOUNT

    d.oracle.advance_to(110)
    before = d.ledger.balance_of(R)
    d.engine.claim(R, 1, S)
    assert d.ledger.balance_of(R) == before + 1_000_000
    assert d.queries.get(1).claimed

    with pytest.raises(EscrowError) as exc:
        d.engine.claim(R, 1, S)
    assert exc.value.code == ErrorCode.ALREADY_FINALIZED


def test_refund_by_sender_after_one_block() -> None:
    d = _deployment()
    eid = d.engine.create(DAVE, R, 1_000_000, 1, H)
    d.oracle.advance_to(101)

    for other in (ALICE, BOB, CAROL, EVE, DEPLOYER):
        with pytest.raises(EscrowError) as exc:
            d.engine.refund(other, eid)
        assert exc.value.code == ErrorCode.NOT_AUTHORIZED

    before = d.ledger.balance_of(DAVE)
    d.engine.refund(DAVE, eid)
    assert d.ledger.balance_of(DAVE) == before + 1_000_000
    assert d.queries.get(eid).refunded


def test_emergency_cancel_window() -> None:
    d = _deployment()
    first = d.engine.create(ALICE, R, 1_000_000, 10, H)
    second = d.engine.create(ALICE, R, 1_000_000, 10, H)

    d.oracle.advance_to(105)
    d.engine.emergency_cancel(DEPLOYER, first)
    with pytest.raises(EscrowError) as exc:
        d.engine.emergency_cancel(DEPLOYER, first)
    assert exc.value.code == ErrorCode.ALREADY_FINALIZED

    d.oracle.advance_to(110)
    with pytest.raises(EscrowError) as exc:
        d.engine.emergency_cancel(DEPLOYER, second)
    assert exc.value.code == ErrorCode.ALREADY_EXPIRED
    assert d.queries.get(second).outcome is EscrowOutcome.OPEN


def test_deployments_are_isolated() -> None:
    a = _deployment()
    b = _deployment()
    a.engine.create(ALICE, R, 5, 1, H)
    a.engine.create(ALICE, R, 5, 1, H)
    assert b.engine.create(ALICE, R, 5, 1, H) == 1
    assert b.queries.stats().total_escrows == 1


def test_apply_block_runs_ops_in_order_then_advances() -> None:
    d = _deployment()
    results = apply_block(
        d,
        [
            _create(ALICE, 500, 2),
            _create(ALICE, 0, 2),
            _create(ALICE, 700, 2),
            Operation(OperationType.REFUND, ALICE, {"escrow_id": 1}),
        ],
    )

    assert [r.ok for r in results] == [True, False, True, False]
    assert results[0].value == 1
    assert results[1].error.code == ErrorCode.INVALID_AMOUNT
    assert results[2].value == 2
    assert results[3].error.code == ErrorCode.HEIGHT_NOT_REACHED
    assert d.oracle.current_height() == 101
    assert d.ledger.balance_of(DEFAULT_HOLDING_ACCOUNT) == 1_200

    apply_block(d, [])
    results = apply_block(d, [Operation(OperationType.REFUND, ALICE, {"escrow_id": 1})])
    assert results[0].ok
    assert d.oracle.current_height() == 103


def test_apply_block_requires_manual_oracle() -> None:
    class FixedOracle(HeightOracle):
        def current_height(self) -> int:
            return 7

    d = deploy(EscrowConfig(owner=DEPLOYER), oracle=FixedOracle())
    with pytest.raises(EscrowError) as exc:
        apply_block(d, [])
    assert exc.value.code == ErrorCode.NOT_IMPLEMENTED


def test_unknown_operation_type() -> None:
    d = _deployment()
    result = apply_op(d, Operation("transfer", ALICE, {}))  # type: ignore[arg-type]
    assert result.error.code == ErrorCode.INVALID_TYPE


def test_non_dict_payload() -> None:
    d = _deployment()
    result = apply_op(d, Operation(OperationType.REFUND, ALICE, [1]))  # type: ignore[arg-type]
    assert result.error.code == ErrorCode.INVALID_PAYLOAD


def test_random_operations_preserve_invariants() -> None:
    rng = random.Random(1234)
    d = _deployment()
    actors = [ALICE, BOB, DAVE, DEPLOYER, EVE]
    paid_out: dict[int, int] = {}
    seen_final: dict[int, EscrowOutcome] = {}

    for _ in range(300):
        caller = rng.choice(actors)
        known = d.queries.list_ids(limit=1_000)
        eid = rng.choice(known) if known and rng.random() < 0.9 else rng.randint(0, 50)
        kind = rng.choice(list(OperationType))
        if kind is OperationType.CREATE:
            op = _create(caller, rng.randint(0, 2_000), rng.randint(0, 5), recipient=rng.choice(actors))
        elif kind is OperationType.CLAIM:
            op = Operation(kind, caller, {"escrow_id": eid, "secret": rng.choice([S, b"\x02" * 32])})
        else:
            op = Operation(kind, caller, {"escrow_id": eid})

        holding_before = d.ledger.balance_of(DEFAULT_HOLDING_ACCOUNT)
        result = apply_op(d, op)
        if result.ok and kind is not OperationType.CREATE:
            paid_out[eid] = paid_out.get(eid, 0) + 1
            assert d.ledger.balance_of(DEFAULT_HOLDING_ACCOUNT) == holding_before - result.value.amount
        if result.ok and kind is OperationType.CREATE:
            record = d.queries.get(result.value)
            assert record.unlock_height == record.created_height + op.payload["blocks_ahead"]
            assert op.payload["blocks_ahead"] > 0

        for record in d.repository.records:
            assert not (record.claimed and record.refunded)
            if record.id in seen_final:
                assert record.outcome is seen_final[record.id]
            elif record.outcome is not EscrowOutcome.OPEN:
                seen_final[record.id] = record.outcome

        if rng.random() < 0.3:
            d.oracle.advance(1)

    assert all(count == 1 for count in paid_out.values())
    open_total = sum(r.amount for r in d.repository.records if r.outcome is EscrowOutcome.OPEN)
    assert d.ledger.balance_of(DEFAULT_HOLDING_ACCOUNT) == open_total


@pytest.mark.parametrize("kind", list(OperationType))
def test_short_caller_rejected_at_dispatch(kind: OperationType) -> None:
    d = _deployment()
    payload = {"escrow_id": 1, "secret": S}
    if kind is OperationType.CREATE:
        payload = {"recipient": R, "amount": 5, "blocks_ahead": 1, "secret_hash": H}

    result = apply_op(d, Operation(kind, b"abc", payload))

    assert result.error.code == ErrorCode.INVALID_PAYLOAD
    assert d.queries.events() == []
