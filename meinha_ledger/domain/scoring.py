"""Reputation scoring engine - replays a user's debt history against a rule set"""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from meinha_ledger.domain.models import (
    AMOUNT_TOLERANCE_CENTS,
    DEBT_STATUSES,
    OPEN,
    PAID,
    Debt,
    ScoreBreakdown,
    ScoreDetails,
    ScoreEvent,
)
from meinha_ledger.domain.rules import ScoreRules, parse_rules
from meinha_ledger.utils.date_utils import add_days, as_date, days_between, sort_stamp, utc_now

EARNED = "earned"
LOST = "lost"

# An open debt overdue for longer than this is treated as a default
DEFAULT_AFTER_DAYS = 60


def debt_problem(debt: Debt) -> Optional[str]:
    """Return why a record cannot be scored, or None when it is usable"""
    if not debt.id:
        return "missing id"
    if not debt.creditor_id or not debt.debtor_id:
        return "missing participant"
    if debt.creditor_id == debt.debtor_id:
        return "creditor and debtor are the same user"
    if debt.status not in DEBT_STATUSES:
        return f"unknown status {debt.status!r}"
    if not isinstance(debt.due_date, date):
        return "missing due date"
    if not isinstance(debt.created_at, date):
        return "missing creation date"
    if not isinstance(debt.original_amount_cents, int) or debt.original_amount_cents <= 0:
        return "original amount must be positive"
    if debt.status == PAID and not isinstance(debt.paid_at or debt.updated_at, date):
        return "paid debt without payment date"
    return None


def group_chains(user_id: str, debts: Iterable[Debt]) -> Tuple[List[List[Debt]], List[str]]:
    """
    Collect the user's usable records into chains, oldest chain first.

    Returns:
        (chains, skipped_debt_ids) where chains is a list of record lists
    """
    by_chain: Dict[str, List[Debt]] = defaultdict(list)
    skipped: List[str] = []

    for debt in debts:
        if not isinstance(debt, Debt):
            continue
        if not debt.involves(user_id):
            continue
        if debt_problem(debt) is not None:
            skipped.append(str(debt.id))
            continue
        by_chain[debt.chain_id].append(debt)

    chains = []
    for records in by_chain.values():
        if sum(1 for r in records if r.status == OPEN) > 1:
            skipped.extend(r.id for r in records)
            continue
        records.sort(key=lambda r: (r.total_paid_in_chain_cents, sort_stamp(r.created_at), r.id))
        if _unsettled_without_head(records):
            skipped.extend(r.id for r in records)
            continue
        chains.append(records)

    chains.sort(key=lambda recs: (sort_stamp(_first_record(recs).created_at), _first_record(recs).id))
    return chains, sorted(skipped)


def _unsettled_without_head(records: List[Debt]) -> bool:
    """Every record is closed yet money is still owed: the OPEN remainder is missing"""
    if any(r.status == OPEN for r in records):
        return False
    return records[-1].remaining_amount_cents > AMOUNT_TOLERANCE_CENTS


def _first_record(records: List[Debt]) -> Debt:
    origins = [r for r in records if not r.was_partial_payment]
    return origins[0] if origins else records[0]


def _weighted(points: float, weight: float, repeated: bool, repeat_factor: float) -> float:
    value = points * weight
    if value > 0 and repeated:
        value *= repeat_factor
    return round(value, 2)


def _event(points: float, reason: str, when: date, debt_id: str) -> ScoreEvent:
    return ScoreEvent(
        type=EARNED if points > 0 else LOST,
        reason=reason,
        points=points,
        date=as_date(when),
        debt_id=debt_id,
    )


def _settlement_points(
    rules: ScoreRules, is_creditor: bool, days_late: int, override: Any
) -> Tuple[float, str]:
    """Points and reason for the payment timing of a settled chain"""
    bonus = rules.payment_bonus if is_creditor else rules.debtor_bonus

    if override is not None:
        if override.was_on_time:
            return bonus.on_time, "Paid on time (adjusted by admin)"
        if is_creditor:
            return 0, ""
        return rules.penalties.late_30plus, "Paid late (adjusted by admin)"

    if days_late < 0:
        return bonus.early, f"Paid {-days_late} day(s) early"
    if days_late <= bonus.late_tolerance:
        return bonus.on_time, "Paid on time"
    if is_creditor:
        return 0, ""

    band, penalty = rules.penalties.late_penalty(days_late)
    return penalty, f"Paid {days_late} day(s) late ({band})"


def _score_chain(
    user_id: str,
    records: List[Debt],
    rules: ScoreRules,
    as_of: date,
    repeated: bool,
) -> List[ScoreEvent]:
    """Ordered score events for one chain from the user's point of view"""
    first = _first_record(records)
    is_creditor = first.creditor_id == user_id
    weight = rules.value_weight(first.original_amount_cents)
    events: List[ScoreEvent] = []

    def add(points: float, reason: str, when: date, debt_id: str) -> None:
        value = _weighted(points, weight, repeated, rules.repeat_pair_factor)
        if value != 0:
            events.append(_event(value, reason, when, debt_id))

    # 1. Creation (creditor side, chain origin only)
    if is_creditor and not first.was_partial_payment:
        add(rules.creditor_creation, "Registered a debt as creditor", first.created_at, first.id)

    head = next((r for r in records if r.status == OPEN), None)

    # 2. Settlement timing, once per fully paid chain
    if head is None:
        final = records[-1]
        paid_when = final.paid_at or final.updated_at
        override = _latest_override(records)
        days_late = days_between(final.due_date, paid_when)
        points, reason = _settlement_points(rules, is_creditor, days_late, override)
        add(points, reason, paid_when, final.id)
        return events

    # 3. and 4. Open overdue accrual and default, debtor side only
    if is_creditor:
        return events

    days_overdue = days_between(head.due_date, as_of)
    if days_overdue <= 0:
        return events

    weeks = days_overdue // 7
    if weeks > 0:
        penalty = max(weeks * rules.penalties.overdue_weekly, rules.penalties.overdue_max)
        add(penalty, f"Overdue {weeks} week(s)", add_days(head.due_date, weeks * 7), head.id)

    if days_overdue > DEFAULT_AFTER_DAYS:
        add(
            rules.penalties.default,
            f"Defaulted: overdue more than {DEFAULT_AFTER_DAYS} days",
            add_days(head.due_date, DEFAULT_AFTER_DAYS + 1),
            head.id,
        )

    return events


def _latest_override(records: List[Debt]):
    overrides = [r.payment_override for r in records if r.payment_override is not None]
    if not overrides:
        return None
    return max(overrides, key=lambda o: sort_stamp(o.overridden_at))


def calculate_score(
    user_id: str,
    debts: Iterable[Debt],
    rules: ScoreRules | Dict[str, Any],
    as_of: date | None = None,
) -> ScoreDetails:
    """
    Main entry point: replay every chain the user took part in.

    Requirements:
    - Creditor earns creditorCreation per chain created
    - Settled chains pay early/on-time bonuses to both sides, or a late
      penalty band to the debtor once the grace window is exceeded
    - Open overdue chains cost the debtor overdueWeekly per full week
      (capped at overdueMax), plus a one-time default after 60 days
    - Malformed records are skipped and reported, never fatal

    Deterministic for identical (user_id, debts, rules, as_of).

    Raises:
        InvalidScoreRulesError: When rules do not validate
    """
    rules = parse_rules(rules)
    as_of = as_date(as_of) if as_of is not None else utc_now().date()

    chains, skipped = group_chains(user_id, debts)

    # Same creditor/debtor pair in the same calendar month
    pair_month_counts: Dict[Tuple[str, str, int, int], int] = defaultdict(int)
    ordered: List[Tuple[date, int, int, ScoreEvent]] = []

    for chain_index, records in enumerate(chains):
        first = _first_record(records)
        created = first.created_at
        key = (first.creditor_id, first.debtor_id, created.year, created.month)
        pair_month_counts[key] += 1
        repeated = pair_month_counts[key] > rules.repeat_pair_limit

        for seq, event in enumerate(_score_chain(user_id, records, rules, as_of, repeated)):
            ordered.append((event.date, chain_index, seq, event))

    ordered.sort(key=lambda item: item[:3])
    history = [item[3] for item in ordered]

    earned = round(sum(e.points for e in history if e.points > 0), 2)
    lost = round(sum(e.points for e in history if e.points < 0), 2)
    score = rules.clamp(round(rules.initial_score + earned + lost, 2))

    return ScoreDetails(
        score=score,
        classification=rules.classify(score),
        breakdown=ScoreBreakdown(base=rules.initial_score, earned=earned, lost=lost),
        history=history,
        skipped_debt_ids=skipped,
    )
