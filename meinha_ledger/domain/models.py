"""Domain models - pure Python dataclasses representing ledger and score entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

# Invariant tolerance for money comparisons (1 cent)
AMOUNT_TOLERANCE_CENTS = 1

OPEN = "OPEN"
PAID = "PAID"
DEBT_STATUSES = (OPEN, PAID)


@dataclass(frozen=True)
class ChainLink:
    """Present only on records split off a partially paid predecessor"""

    chain_id: str
    parent_debt_id: str


@dataclass(frozen=True)
class PaymentOverride:
    """Administrator ruling on whether a settled debt was paid on time"""

    was_on_time: bool
    overridden_by: str
    overridden_at: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class Debt:
    """One accounting record of a debt chain"""

    id: str
    creditor_id: str
    debtor_id: str
    amount_cents: int
    original_amount_cents: int
    total_paid_in_chain_cents: int
    remaining_amount_cents: int
    due_date: Optional[date]
    status: str  # "OPEN" or "PAID"
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    link: Optional[ChainLink] = None
    description: Optional[str] = None
    attachment: Optional[str] = None
    paid_at: Optional[datetime] = None
    payment_override: Optional[PaymentOverride] = None

    @property
    def chain_id(self) -> str:
        return self.link.chain_id if self.link else self.id

    @property
    def parent_debt_id(self) -> Optional[str]:
        return self.link.parent_debt_id if self.link else None

    @property
    def was_partial_payment(self) -> bool:
        return self.link is not None

    @property
    def is_open(self) -> bool:
        return self.status == OPEN

    def involves(self, user_id: str) -> bool:
        return user_id in (self.creditor_id, self.debtor_id)


@dataclass(frozen=True)
class ScoreEvent:
    """One explainable point adjustment tied to a debt"""

    type: str  # "earned" or "lost"
    reason: str
    points: float
    date: date
    debt_id: str


@dataclass(frozen=True)
class ScoreBreakdown:
    base: float
    earned: float
    lost: float


@dataclass(frozen=True)
class ScoreDetails:
    """Output of the reputation engine"""

    score: float
    classification: str
    breakdown: ScoreBreakdown
    history: List[ScoreEvent] = field(default_factory=list)
    skipped_debt_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class HubUser:
    """Participant as listed by the external user directory"""

    id: str
    username: str
    name: Optional[str] = None
