"""Data access layer for debts and the settings store"""

import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, aliased
from meinha_ledger.config import settings
from meinha_ledger.infrastructure.database.models import DebtRecord, SystemSetting
from meinha_ledger.domain.chain import PaymentApplied
from meinha_ledger.domain.exceptions import DebtNotFoundError, StaleDebtError
from meinha_ledger.domain.models import OPEN, ChainLink, Debt, PaymentOverride
from meinha_ledger.domain.rules import DEFAULT_RULES, ScoreRules, parse_rules


def override_to_document(override: Optional[PaymentOverride]) -> Optional[dict]:
    if override is None:
        return None
    document = {
        "wasOnTime": override.was_on_time,
        "overriddenBy": override.overridden_by,
        "overriddenAt": override.overridden_at.isoformat(),
    }
    if override.reason:
        document["reason"] = override.reason
    return document


def override_from_document(document: Optional[dict]) -> Optional[PaymentOverride]:
    if not document:
        return None
    try:
        return PaymentOverride(
            was_on_time=bool(document["wasOnTime"]),
            overridden_by=document["overriddenBy"],
            overridden_at=datetime.fromisoformat(document["overriddenAt"]),
            reason=document.get("reason"),
        )
    except (KeyError, ValueError, TypeError) as e:
        logging.warning(f"Ignoring malformed payment override: {e}")
        return None


def to_domain(record: DebtRecord) -> Debt:
    """Map a row to the domain record; continuation rows get a ChainLink"""
    link = None
    if record.parent_debt_id:
        link = ChainLink(chain_id=record.chain_id or record.id, parent_debt_id=record.parent_debt_id)

    return Debt(
        id=record.id,
        creditor_id=record.creditor_id,
        debtor_id=record.debtor_id,
        amount_cents=record.amount_cents,
        original_amount_cents=record.original_amount_cents,
        total_paid_in_chain_cents=record.total_paid_in_chain_cents or 0,
        remaining_amount_cents=record.remaining_amount_cents,
        due_date=record.due_date,
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        link=link,
        description=record.description,
        attachment=record.attachment,
        paid_at=record.paid_at,
        payment_override=override_from_document(record.payment_override),
    )


def to_record(debt: Debt) -> DebtRecord:
    return DebtRecord(
        id=debt.id,
        creditor_id=debt.creditor_id,
        debtor_id=debt.debtor_id,
        amount_cents=debt.amount_cents,
        original_amount_cents=debt.original_amount_cents,
        total_paid_in_chain_cents=debt.total_paid_in_chain_cents,
        remaining_amount_cents=debt.remaining_amount_cents,
        chain_id=debt.chain_id,
        parent_debt_id=debt.parent_debt_id,
        was_partial_payment=debt.was_partial_payment,
        due_date=debt.due_date,
        status=debt.status,
        description=debt.description,
        attachment=debt.attachment,
        paid_at=debt.paid_at,
        payment_override=override_to_document(debt.payment_override),
        created_at=debt.created_at,
        updated_at=debt.updated_at,
    )


class DebtRepository:
    """Repository for debt chains"""

    def __init__(self, db: Session):
        self.db = db

    def add(self, debt: Debt) -> Debt:
        self.db.add(to_record(debt))
        self.db.flush()
        return debt

    def get(self, debt_id: str) -> Debt:
        record = self.db.get(DebtRecord, debt_id)
        if record is None:
            raise DebtNotFoundError(f"Debt {debt_id} not found")
        return to_domain(record)

    def list_for_user(self, user_id: str) -> List[Debt]:
        """Every record where the user is creditor or debtor"""
        records = (
            self.db.query(DebtRecord)
            .filter(or_(DebtRecord.creditor_id == user_id, DebtRecord.debtor_id == user_id))
            .order_by(DebtRecord.created_at, DebtRecord.id)
            .all()
        )
        return [to_domain(r) for r in records]

    def list_all(self) -> List[Debt]:
        records = self.db.query(DebtRecord).order_by(DebtRecord.created_at, DebtRecord.id).all()
        return [to_domain(r) for r in records]

    def get_chain(self, chain_id: str) -> List[Debt]:
        records = (
            self.db.query(DebtRecord)
            .filter(DebtRecord.chain_id == chain_id)
            .order_by(DebtRecord.total_paid_in_chain_cents, DebtRecord.created_at)
            .all()
        )
        return [to_domain(r) for r in records]

    def apply_payment(self, result: PaymentApplied) -> None:
        """
        Persist a payment's mutation set inside the caller's transaction.

        The head is closed with a conditional write keyed on status OPEN, so a
        concurrent payment that already closed it makes this one fail instead
        of forking the chain. The caller commits, or rolls back on error.

        Raises:
            StaleDebtError: The head was no longer OPEN
        """
        closed = result.closed_record
        updated = (
            self.db.query(DebtRecord)
            .filter(DebtRecord.id == closed.id, DebtRecord.status == OPEN)
            .update(
                {
                    DebtRecord.status: closed.status,
                    DebtRecord.total_paid_in_chain_cents: closed.total_paid_in_chain_cents,
                    DebtRecord.remaining_amount_cents: closed.remaining_amount_cents,
                    DebtRecord.paid_at: closed.paid_at,
                    DebtRecord.updated_at: closed.updated_at,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise StaleDebtError(f"Debt {closed.id} is no longer OPEN")

        if result.new_record is not None:
            self.db.add(to_record(result.new_record))
        self.db.flush()

    def save_override(self, debt: Debt) -> None:
        self.db.query(DebtRecord).filter(DebtRecord.id == debt.id).update(
            {
                DebtRecord.payment_override: override_to_document(debt.payment_override),
                DebtRecord.updated_at: debt.updated_at,
            },
            synchronize_session=False,
        )

    def list_with_overrides(self) -> List[Debt]:
        records = self.db.query(DebtRecord).filter(DebtRecord.payment_override.isnot(None)).all()
        return [to_domain(r) for r in records]

    def delete(self, debt_id: str) -> None:
        """
        Delete a chain tail with a conditional write keyed on it having no
        successor, so a payment that split it since the caller checked wins.

        Raises:
            StaleDebtError: The record is gone or now has a successor
        """
        successor = aliased(DebtRecord)
        has_successor = select(successor.id).where(successor.parent_debt_id == debt_id).exists()
        deleted = (
            self.db.query(DebtRecord)
            .filter(DebtRecord.id == debt_id, ~has_successor)
            .delete(synchronize_session=False)
        )
        if deleted != 1:
            raise StaleDebtError(f"Debt {debt_id} is no longer the latest record of its chain")


class SettingsRepository:
    """Key-value settings store holding the score rule document"""

    def __init__(self, db: Session, rules_key: str | None = None):
        self.db = db
        self.rules_key = rules_key or settings.score_rules_key

    def load_rules(self) -> ScoreRules:
        """
        Stored rules, or DEFAULT_RULES when nothing was saved yet.

        Raises:
            InvalidScoreRulesError: Stored document does not validate
        """
        row = self.db.get(SystemSetting, self.rules_key)
        if row is None:
            return DEFAULT_RULES
        return parse_rules(row.value)

    def save_rules(self, rules) -> ScoreRules:
        """Validate then upsert the rule document; returns the stored value"""
        validated = parse_rules(rules)
        row = self.db.get(SystemSetting, self.rules_key)
        if row is None:
            self.db.add(SystemSetting(key=self.rules_key, value=validated.to_document()))
        else:
            row.value = validated.to_document()
        self.db.flush()
        return validated
