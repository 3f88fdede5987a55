"""Partial-payment chain resolution for ledger debts"""

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Union

from meinha_ledger.domain.exceptions import InvalidDebtError
from meinha_ledger.domain.models import (
    AMOUNT_TOLERANCE_CENTS,
    OPEN,
    PAID,
    ChainLink,
    Debt,
    PaymentOverride,
)
from meinha_ledger.utils.date_utils import utc_now

# Rejection reasons
NOT_OPEN = "not_open"
NOT_PAID = "not_paid"
NON_POSITIVE_AMOUNT = "non_positive_amount"
EXCEEDS_REMAINING = "exceeds_remaining"
HAS_SUCCESSOR = "has_successor"


@dataclass(frozen=True)
class PaymentApplied:
    """Mutation set of a successful payment; persist both records atomically"""

    closed_record: Debt
    new_record: Optional[Debt] = None
    ok: bool = True


@dataclass(frozen=True)
class Rejection:
    """Caller/input error; nothing was mutated"""

    reason: str
    message: str
    ok: bool = False


PaymentResult = Union[PaymentApplied, Rejection]


def new_debt_id() -> str:
    return uuid.uuid4().hex


def open_debt(
    creditor_id: str,
    debtor_id: str,
    amount_cents: int,
    due_date: date,
    description: str | None = None,
    attachment: str | None = None,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_debt_id,
) -> Debt:
    """
    Start a new chain with a single OPEN origin record.

    Raises:
        InvalidDebtError: Non-positive amount, missing participant, or a
            creditor lending to themselves
    """
    if amount_cents <= 0:
        raise InvalidDebtError("Debt amount must be greater than zero")
    if not creditor_id or not debtor_id:
        raise InvalidDebtError("Creditor and debtor are required")
    if creditor_id == debtor_id:
        raise InvalidDebtError("A user cannot owe themselves")

    now = now or utc_now()
    description = description.strip() if description else None

    return Debt(
        id=id_factory(),
        creditor_id=creditor_id,
        debtor_id=debtor_id,
        amount_cents=amount_cents,
        original_amount_cents=amount_cents,
        total_paid_in_chain_cents=0,
        remaining_amount_cents=amount_cents,
        due_date=due_date,
        status=OPEN,
        created_at=now,
        updated_at=now,
        description=description or None,
        attachment=attachment,
    )


def apply_payment(
    debt: Debt,
    amount_cents: int,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_debt_id,
) -> PaymentResult:
    """
    Apply a payment to the OPEN head of a chain.

    Rules:
    - Payment within 1 cent of the remaining amount closes the chain:
      the record becomes PAID with remaining 0 and no successor
    - A smaller payment closes the head with its amount unchanged and
      creates an OPEN successor carrying the new remaining amount
    - Non-OPEN debts, non-positive amounts and overpayments are rejected

    The input record is never modified; callers persist the returned
    records in one atomic write.

    Example:
        original 10000, pay 4000 -> closed(amount=10000, PAID)
                                    + new(remaining=6000, paid=4000, OPEN)
        then pay 6000             -> closed(remaining=0, PAID), no new record
    """
    if debt.status != OPEN:
        return Rejection(NOT_OPEN, f"Debt {debt.id} is {debt.status}, only OPEN debts accept payments")

    if amount_cents <= 0:
        return Rejection(NON_POSITIVE_AMOUNT, "Payment amount must be greater than zero")

    remaining = debt.remaining_amount_cents
    if amount_cents > remaining + AMOUNT_TOLERANCE_CENTS:
        return Rejection(
            EXCEEDS_REMAINING,
            f"Payment of {amount_cents} exceeds the remaining {remaining}",
        )

    now = now or utc_now()

    if abs(amount_cents - remaining) <= AMOUNT_TOLERANCE_CENTS:
        closed = replace(
            debt,
            status=PAID,
            total_paid_in_chain_cents=debt.original_amount_cents,
            remaining_amount_cents=0,
            paid_at=now,
            updated_at=now,
        )
        return PaymentApplied(closed_record=closed)

    closed = replace(debt, status=PAID, paid_at=now, updated_at=now)

    total_paid = debt.total_paid_in_chain_cents + amount_cents
    new_remaining = max(debt.original_amount_cents - total_paid, 0)
    successor = Debt(
        id=id_factory(),
        creditor_id=debt.creditor_id,
        debtor_id=debt.debtor_id,
        amount_cents=new_remaining,
        original_amount_cents=debt.original_amount_cents,
        total_paid_in_chain_cents=total_paid,
        remaining_amount_cents=new_remaining,
        due_date=debt.due_date,
        status=OPEN,
        created_at=now,
        updated_at=now,
        link=ChainLink(chain_id=debt.chain_id, parent_debt_id=debt.id),
        description=debt.description,
        attachment=debt.attachment,
    )
    return PaymentApplied(closed_record=closed, new_record=successor)


def check_deletable(debt: Debt, chain_records: Iterable[Debt]) -> Optional[Rejection]:
    """Only the latest record of a chain may be deleted; returns None when allowed"""
    successors = [r.id for r in chain_records if r.parent_debt_id == debt.id]
    if successors:
        return Rejection(
            HAS_SUCCESSOR,
            f"Debt {debt.id} was split into {', '.join(successors)}; delete the latest record first",
        )
    return None


def override_payment_timing(
    debt: Debt,
    was_on_time: bool,
    overridden_by: str,
    reason: str | None = None,
    now: datetime | None = None,
) -> Union[Debt, Rejection]:
    """Record an administrator ruling on a settled debt's payment timing"""
    if debt.status != PAID:
        return Rejection(NOT_PAID, "Only paid debts can have their payment timing overridden")

    now = now or utc_now()
    override = PaymentOverride(
        was_on_time=was_on_time,
        overridden_by=overridden_by,
        overridden_at=now,
        reason=reason.strip() if reason and reason.strip() else None,
    )
    return replace(debt, payment_override=override, updated_at=now)


def clear_payment_override(debt: Debt, now: datetime | None = None) -> Debt:
    return replace(debt, payment_override=None, updated_at=now or utc_now())


def verify_chain(records: Iterable[Debt]) -> List[str]:
    """
    Check ledger invariants for the records of one chain.

    Returns a list of human-readable violations (empty when healthy).
    """
    records = list(records)
    if not records:
        return []

    problems = []
    by_id = {r.id: r for r in records}

    chain_ids = {r.chain_id for r in records}
    if len(chain_ids) > 1:
        problems.append(f"records span several chains: {sorted(chain_ids)}")

    originals = {r.original_amount_cents for r in records}
    if len(originals) > 1:
        problems.append(f"original amount differs across chain: {sorted(originals)}")

    open_ids = [r.id for r in records if r.status == OPEN]
    if len(open_ids) > 1:
        problems.append(f"more than one OPEN record: {sorted(open_ids)}")

    for r in records:
        if r.remaining_amount_cents < 0:
            problems.append(f"{r.id}: negative remaining amount")
        drift = r.total_paid_in_chain_cents + r.remaining_amount_cents - r.original_amount_cents
        if abs(drift) > AMOUNT_TOLERANCE_CENTS:
            problems.append(f"{r.id}: paid + remaining is off from original by {drift}")
        if r.status == OPEN and r.amount_cents != r.remaining_amount_cents:
            problems.append(f"{r.id}: OPEN amount differs from remaining amount")

        parent = by_id.get(r.parent_debt_id) if r.parent_debt_id else None
        if parent is not None:
            if parent.status != PAID:
                problems.append(f"{r.id}: parent {parent.id} is not PAID")
            if parent.chain_id != r.chain_id:
                problems.append(f"{r.id}: parent {parent.id} belongs to another chain")

    return problems
