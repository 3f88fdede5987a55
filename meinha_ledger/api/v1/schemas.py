"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional

from meinha_ledger.domain.models import Debt, ScoreDetails


class DebtCreateRequest(BaseModel):
    """Request body for POST /v1/debts"""

    creditor_id: str = Field(..., min_length=1, description="User who is owed")
    debtor_id: str = Field(..., min_length=1, description="User who must pay")
    amount_cents: int = Field(..., gt=0, description="Amount owed in cents")
    due_date: date
    description: Optional[str] = Field(None, max_length=500)
    attachment: Optional[str] = Field(None, description="URL of an uploaded receipt")


class PaymentRequest(BaseModel):
    """Request body for POST /v1/debts/{debt_id}/payments"""

    amount_cents: int = Field(..., description="Amount paid in cents")


class OverrideRequest(BaseModel):
    """Request body for PUT /v1/debts/{debt_id}/override"""

    was_on_time: bool
    overridden_by: str = Field(..., min_length=1, description="Admin user identifier")
    reason: Optional[str] = Field(None, max_length=500)


class PaymentOverrideSchema(BaseModel):
    was_on_time: bool
    overridden_by: str
    overridden_at: datetime
    reason: Optional[str] = None


class DebtSchema(BaseModel):
    """One ledger record"""

    id: str
    creditor_id: str
    debtor_id: str
    amount_cents: int
    original_amount_cents: int
    total_paid_in_chain_cents: int
    remaining_amount_cents: int
    chain_id: str
    parent_debt_id: Optional[str] = None
    was_partial_payment: bool
    due_date: Optional[date] = None
    status: str
    description: Optional[str] = None
    attachment: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_override: Optional[PaymentOverrideSchema] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, debt: Debt) -> "DebtSchema":
        override = None
        if debt.payment_override is not None:
            override = PaymentOverrideSchema(
                was_on_time=debt.payment_override.was_on_time,
                overridden_by=debt.payment_override.overridden_by,
                overridden_at=debt.payment_override.overridden_at,
                reason=debt.payment_override.reason,
            )
        return cls(
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
            payment_override=override,
            created_at=debt.created_at,
            updated_at=debt.updated_at,
        )


class DebtListResponse(BaseModel):
    user_id: str
    debts: List[DebtSchema]


class ChainResponse(BaseModel):
    chain_id: str
    records: List[DebtSchema]
    problems: List[str] = Field(default_factory=list, description="Broken chain invariants, empty when consistent")


class PaymentResponse(BaseModel):
    """Response for POST /v1/debts/{debt_id}/payments"""

    status: str = "ok"
    closed_record: DebtSchema
    new_record: Optional[DebtSchema] = None


class RejectionResponse(BaseModel):
    """Body of a rejected ledger operation"""

    status: str = "rejected"
    reason: str
    message: str


class ClearOverridesResponse(BaseModel):
    cleared: int


class ScoreEventSchema(BaseModel):
    type: str
    reason: str
    points: float
    date: date
    debt_id: str


class ScoreBreakdownSchema(BaseModel):
    base: float
    earned: float
    lost: float


class ScoreResponse(BaseModel):
    """Response for GET /v1/score/{user_id}"""

    user_id: str
    score: float
    classification: str
    breakdown: ScoreBreakdownSchema
    history: List[ScoreEventSchema]
    skipped_debt_ids: List[str]

    @classmethod
    def from_domain(cls, user_id: str, details: ScoreDetails) -> "ScoreResponse":
        return cls(
            user_id=user_id,
            score=details.score,
            classification=details.classification,
            breakdown=ScoreBreakdownSchema(
                base=details.breakdown.base,
                earned=details.breakdown.earned,
                lost=details.breakdown.lost,
            ),
            history=[
                ScoreEventSchema(
                    type=e.type,
                    reason=e.reason,
                    points=e.points,
                    date=e.date,
                    debt_id=e.debt_id,
                )
                for e in details.history
            ],
            skipped_debt_ids=list(details.skipped_debt_ids),
        )


class ScoreReportItem(BaseModel):
    """Single user in the admin score report"""

    user_id: str
    username: str
    score: float
    classification: str
    earned: float
    lost: float


class ScoreReportResponse(BaseModel):
    """Response for GET /v1/score/report"""

    users: List[ScoreReportItem]
