"""Unit tests for partial-payment chain resolution"""

import pytest
from dataclasses import replace
from datetime import date, datetime
from meinha_ledger.domain.chain import (
    EXCEEDS_REMAINING,
    HAS_SUCCESSOR,
    NON_POSITIVE_AMOUNT,
    NOT_OPEN,
    NOT_PAID,
    PaymentApplied,
    Rejection,
    apply_payment,
    check_deletable,
    clear_payment_override,
    open_debt,
    override_payment_timing,
    verify_chain,
)
from meinha_ledger.domain.exceptions import InvalidDebtError
from meinha_ledger.domain.models import OPEN, PAID

PAY_DAY = datetime(2026, 3, 5, 9, 30)


def test_open_debt_starts_chain(make_debt):
    """Origin record: amount = original = remaining, nothing paid, no link"""
    debt = make_debt(amount_cents=10000)

    assert debt.status == OPEN
    assert debt.amount_cents == debt.original_amount_cents == debt.remaining_amount_cents == 10000
    assert debt.total_paid_in_chain_cents == 0
    assert debt.chain_id == debt.id
    assert debt.parent_debt_id is None
    assert debt.was_partial_payment is False


@pytest.mark.parametrize(
    "creditor, debtor, amount",
    [
        ("alice", "alice", 1000),  # owing yourself
        ("alice", "bob", 0),
        ("alice", "bob", -500),
        ("", "bob", 1000),
    ],
)
def test_open_debt_rejects_invalid_input(creditor, debtor, amount):
    with pytest.raises(InvalidDebtError):
        open_debt(creditor, debtor, amount, date(2026, 3, 10))


def test_open_debt_strips_blank_description():
    debt = open_debt("alice", "bob", 1000, date(2026, 3, 10), description="   ")
    assert debt.description is None


def test_partial_payment_splits_chain(make_debt):
    """Head closes with its amount unchanged; successor carries the remainder"""
    debt = make_debt(amount_cents=10000)

    result = apply_payment(debt, 4000, now=PAY_DAY, id_factory=lambda: "debt-2")

    assert isinstance(result, PaymentApplied)
    closed, successor = result.closed_record, result.new_record
    assert closed.status == PAID
    assert closed.amount_cents == 10000
    assert closed.paid_at == PAY_DAY

    assert successor.id == "debt-2"
    assert successor.status == OPEN
    assert successor.parent_debt_id == debt.id
    assert successor.chain_id == debt.chain_id
    assert successor.was_partial_payment is True
    assert successor.original_amount_cents == 10000
    assert successor.total_paid_in_chain_cents == 4000
    assert successor.remaining_amount_cents == debt.remaining_amount_cents - 4000
    assert successor.amount_cents == successor.remaining_amount_cents
    assert successor.due_date == debt.due_date
    assert (successor.creditor_id, successor.debtor_id) == (debt.creditor_id, debt.debtor_id)


def test_full_payment_closes_chain(make_debt):
    debt = make_debt(amount_cents=2500)

    result = apply_payment(debt, 2500, now=PAY_DAY)

    assert result.ok is True
    assert result.new_record is None
    assert result.closed_record.status == PAID
    assert result.closed_record.remaining_amount_cents == 0
    assert result.closed_record.total_paid_in_chain_cents == 2500


def test_two_step_payment_example(make_debt):
    """R$100 paid as 40 then 60: one PAID origin, then a PAID remainder, no third record"""
    debt = make_debt(amount_cents=10000)

    first = apply_payment(debt, 4000, now=PAY_DAY, id_factory=lambda: "debt-2")
    origin, remainder = first.closed_record, first.new_record
    assert origin.status == PAID and origin.amount_cents == 10000
    assert remainder.status == OPEN
    assert remainder.remaining_amount_cents == 6000
    assert remainder.total_paid_in_chain_cents == 4000
    assert verify_chain([origin, remainder]) == []

    second = apply_payment(remainder, 6000, now=PAY_DAY)
    assert second.new_record is None
    assert second.closed_record.status == PAID
    assert second.closed_record.remaining_amount_cents == 0
    assert verify_chain([origin, second.closed_record]) == []
    assert [r.status for r in (origin, second.closed_record)] == [PAID, PAID]


def test_chain_invariants_hold_across_many_payments(make_debt):
    """Exactly one OPEN record until the last payment, and paid + remaining = original"""
    ids = iter(f"debt-{n}" for n in range(2, 20))
    records = [make_debt(amount_cents=9999)]

    for amount in (1000, 2500, 333, 4000):
        head = records[-1]
        result = apply_payment(head, amount, now=PAY_DAY, id_factory=lambda: next(ids))
        records[-1] = result.closed_record
        records.append(result.new_record)

        assert verify_chain(records) == []
        assert sum(1 for r in records if r.status == OPEN) == 1

    head = records[-1]
    final = apply_payment(head, head.remaining_amount_cents, now=PAY_DAY)
    records[-1] = final.closed_record

    assert verify_chain(records) == []
    assert all(r.status == PAID for r in records)
    assert records[-1].total_paid_in_chain_cents == 9999


@pytest.mark.parametrize("amount", [5999, 6000, 6001])
def test_payment_within_one_cent_closes_chain(make_debt, amount):
    debt = make_debt(amount_cents=6000)

    result = apply_payment(debt, amount, now=PAY_DAY)

    assert result.new_record is None
    assert result.closed_record.remaining_amount_cents == 0


@pytest.mark.parametrize(
    "amount, reason",
    [
        (0, NON_POSITIVE_AMOUNT),
        (-100, NON_POSITIVE_AMOUNT),
        (6002, EXCEEDS_REMAINING),
        (100000, EXCEEDS_REMAINING),
    ],
)
def test_invalid_amounts_are_rejected_without_mutation(make_debt, amount, reason):
    debt = make_debt(amount_cents=6000)
    snapshot = replace(debt)

    result = apply_payment(debt, amount)

    assert isinstance(result, Rejection)
    assert result.ok is False
    assert result.reason == reason
    assert debt == snapshot


def test_paid_debt_rejects_payment(make_debt):
    closed = apply_payment(make_debt(), 10000, now=PAY_DAY).closed_record

    result = apply_payment(closed, 100)

    assert result.reason == NOT_OPEN


def test_only_latest_record_is_deletable(make_debt):
    debt = make_debt()
    result = apply_payment(debt, 4000, now=PAY_DAY, id_factory=lambda: "debt-2")
    chain_records = [result.closed_record, result.new_record]

    rejection = check_deletable(result.closed_record, chain_records)
    assert rejection.reason == HAS_SUCCESSOR
    assert "debt-2" in rejection.message

    assert check_deletable(result.new_record, chain_records) is None


def test_override_requires_paid_debt(make_debt):
    debt = make_debt()

    result = override_payment_timing(debt, was_on_time=True, overridden_by="admin")

    assert result.reason == NOT_PAID


def test_override_and_clear(make_debt):
    closed = apply_payment(make_debt(), 10000, now=PAY_DAY).closed_record

    overridden = override_payment_timing(
        closed, was_on_time=False, overridden_by="admin", reason=" paid in cash late ", now=PAY_DAY
    )

    assert overridden.payment_override.was_on_time is False
    assert overridden.payment_override.reason == "paid in cash late"
    assert overridden.payment_override.overridden_at == PAY_DAY
    assert clear_payment_override(overridden).payment_override is None


def test_verify_chain_reports_violations(make_debt):
    debt = make_debt(amount_cents=10000)
    result = apply_payment(debt, 4000, now=PAY_DAY, id_factory=lambda: "debt-2")
    reopened_parent = replace(result.closed_record, status=OPEN)
    drifted = replace(result.new_record, remaining_amount_cents=5000, amount_cents=5000)

    problems = verify_chain([reopened_parent, drifted])

    assert any("more than one OPEN" in p for p in problems)
    assert any("not PAID" in p for p in problems)
    assert any("off from original" in p for p in problems)
