"""Score rule set - administrator-editable configuration for the reputation engine"""

from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from meinha_ledger.domain.exceptions import InvalidScoreRulesError


class _RuleModel(BaseModel):
    """Immutable, strict base: unknown keys are configuration mistakes"""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class TimingBonus(_RuleModel):
    """Points for settling a debt; late_tolerance is a grace window in days"""

    early: float = Field(..., ge=0)
    on_time: float = Field(..., ge=0, alias="onTime")
    late_tolerance: int = Field(..., ge=0, alias="lateTolerance")


class PenaltyTable(_RuleModel):
    """Negative point values applied to the debtor"""

    late_1to2: float = Field(..., le=0, alias="late1to2")
    late_3to7: float = Field(..., le=0, alias="late3to7")
    late_8to30: float = Field(..., le=0, alias="late8to30")
    late_30plus: float = Field(..., le=0, alias="late30plus")
    overdue_weekly: float = Field(..., le=0, alias="overdueWeekly")
    overdue_max: float = Field(..., le=0, alias="overdueMax")
    default: float = Field(..., le=0)

    def late_penalty(self, days_late: int) -> Tuple[str, float]:
        """Penalty band for a payment made days_late (>= 1) after the due date"""
        if days_late <= 2:
            return "late1to2", self.late_1to2
        if days_late <= 7:
            return "late3to7", self.late_3to7
        if days_late <= 30:
            return "late8to30", self.late_8to30
        return "late30plus", self.late_30plus


class Tier(_RuleModel):
    """Classification bucket; min_score None marks the catch-all bottom tier"""

    name: str = Field(..., min_length=1)
    min_score: Optional[float] = Field(None, alias="minScore")


class ValueWeight(_RuleModel):
    """Scale points of debts whose original amount is below below_cents"""

    below_cents: int = Field(..., gt=0, alias="belowCents")
    factor: float = Field(..., ge=0, le=1)


DEFAULT_TIERS: Tuple[Tier, ...] = (
    Tier(name="Elite", min_score=900),
    Tier(name="Confiável", min_score=700),
    Tier(name="Ok", min_score=400),
    Tier(name="Instável", min_score=200),
    Tier(name="Perigo", min_score=100),
    Tier(name="Caloteiro", min_score=None),
)

DEFAULT_VALUE_WEIGHTS: Tuple[ValueWeight, ...] = (
    ValueWeight(below_cents=1_000, factor=0.2),  # under R$10
    ValueWeight(below_cents=5_000, factor=0.6),  # under R$50
)


class ScoreRules(_RuleModel):
    """
    Complete rule set consumed by calculate_score.

    Point values and penalty tables are required: a missing key raises
    instead of falling back to a default. Only tiers, weights, clamps and
    the repeat-pair knobs carry defaults.
    """

    initial_score: float = Field(..., alias="initialScore")
    creditor_creation: float = Field(..., ge=0, alias="creditorCreation")
    payment_bonus: TimingBonus = Field(..., alias="paymentBonus")
    debtor_bonus: TimingBonus = Field(..., alias="debtorBonus")
    penalties: PenaltyTable

    max_score: Optional[float] = Field(None, alias="maxScore")
    min_score: Optional[float] = Field(None, alias="minScore")
    tiers: Tuple[Tier, ...] = DEFAULT_TIERS
    value_weights: Tuple[ValueWeight, ...] = Field(DEFAULT_VALUE_WEIGHTS, alias="valueWeights")
    repeat_pair_limit: int = Field(3, ge=1, alias="repeatPairLimit")
    repeat_pair_factor: float = Field(0.5, ge=0, le=1, alias="repeatPairFactor")

    @model_validator(mode="after")
    def _check_consistency(self) -> "ScoreRules":
        if self.max_score is not None and self.min_score is not None and self.min_score > self.max_score:
            raise ValueError("minScore must not exceed maxScore")

        if not self.tiers:
            raise ValueError("at least one tier is required")
        floors = [t.min_score for t in self.tiers[:-1]]
        if any(f is None for f in floors):
            raise ValueError("only the last tier may omit minScore")
        if any(a <= b for a, b in zip(floors, floors[1:])):
            raise ValueError("tier thresholds must be strictly descending")
        if self.tiers[-1].min_score is not None:
            raise ValueError("the last tier must omit minScore")

        cutoffs = [w.below_cents for w in self.value_weights]
        if cutoffs != sorted(set(cutoffs)):
            raise ValueError("valueWeights must be ordered by ascending belowCents")
        return self

    def classify(self, score: float) -> str:
        """Total-order threshold mapping from score to tier name"""
        for tier in self.tiers:
            if tier.min_score is None or score >= tier.min_score:
                return tier.name
        return self.tiers[-1].name

    def value_weight(self, original_amount_cents: int) -> float:
        for weight in self.value_weights:
            if original_amount_cents < weight.below_cents:
                return weight.factor
        return 1.0

    def clamp(self, score: float) -> float:
        if self.max_score is not None and score > self.max_score:
            return self.max_score
        if self.min_score is not None and score < self.min_score:
            return self.min_score
        return score

    def to_document(self) -> dict:
        """camelCase document shape used by the settings store"""
        return self.model_dump(mode="json", by_alias=True)


def parse_rules(data: Any) -> ScoreRules:
    """
    Validate a rule document eagerly.

    Raises:
        InvalidScoreRulesError: On missing keys, wrong types or inconsistent values
    """
    if isinstance(data, ScoreRules):
        return data
    if not isinstance(data, Mapping):
        raise InvalidScoreRulesError(f"Score rules must be a mapping, got {type(data).__name__}")
    try:
        return ScoreRules.model_validate(dict(data))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidScoreRulesError(f"Invalid score rules: {problems}") from e


DEFAULT_RULES = ScoreRules(
    initial_score=500,
    max_score=1000,
    min_score=0,
    creditor_creation=2,
    payment_bonus=TimingBonus(early=4, on_time=3, late_tolerance=0),
    debtor_bonus=TimingBonus(early=10, on_time=7, late_tolerance=0),
    penalties=PenaltyTable(
        late_1to2=-10,
        late_3to7=-25,
        late_8to30=-70,
        late_30plus=-140,
        overdue_weekly=-10,
        overdue_max=-80,
        default=-300,
    ),
)
