"""Reputation score endpoints - per-user details and the admin report"""

import time
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from meinha_ledger.api.v1.schemas import ScoreReportItem, ScoreReportResponse, ScoreResponse
from meinha_ledger.api.dependencies import (
    get_debt_repository,
    get_request_id,
    get_score_rules,
    get_user_directory,
)
from meinha_ledger.infrastructure.clients.users import UserDirectoryClient
from meinha_ledger.infrastructure.database.repositories import DebtRepository
from meinha_ledger.domain.exceptions import UserDirectoryError
from meinha_ledger.domain.rules import ScoreRules
from meinha_ledger.domain.scoring import calculate_score
from meinha_ledger.infrastructure.observability.metrics import (
    record_score,
    score_duration_histogram,
    user_directory_failures_counter,
)
from meinha_ledger.infrastructure.observability.logging import log_score

router = APIRouter()


@router.get("/score/report", response_model=ScoreReportResponse)
async def get_score_report(
    request: Request,
    as_of: Optional[date] = Query(None, description="Evaluate overdue debts as of this day"),
    repo: DebtRepository = Depends(get_debt_repository),
    rules: ScoreRules = Depends(get_score_rules),
    directory: UserDirectoryClient = Depends(get_user_directory),
):
    """
    Score every user known to the directory, best first.

    The whole ledger is read once and replayed per user.
    """
    request_id = get_request_id(request)

    try:
        users = await directory.list_users()
    except UserDirectoryError as e:
        user_directory_failures_counter.inc()
        logging.error(f"User directory error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="User directory unavailable")

    debts = repo.list_all()

    items = []
    for user in users:
        details = calculate_score(user.id, debts, rules, as_of=as_of)
        record_score(details.classification, len(details.skipped_debt_ids))
        items.append(
            ScoreReportItem(
                user_id=user.id,
                username=user.username,
                score=details.score,
                classification=details.classification,
                earned=details.breakdown.earned,
                lost=details.breakdown.lost,
            )
        )

    items.sort(key=lambda item: (-item.score, item.username))
    return ScoreReportResponse(users=items)


@router.get("/score/{user_id}", response_model=ScoreResponse)
def get_user_score(
    user_id: str,
    request: Request,
    as_of: Optional[date] = Query(None, description="Evaluate overdue debts as of this day"),
    repo: DebtRepository = Depends(get_debt_repository),
    rules: ScoreRules = Depends(get_score_rules),
):
    """
    Replay the user's debt history against the current rules.

    Returns:
        Score, tier, breakdown and the itemized event history
    """
    start_time = time.perf_counter()

    with score_duration_histogram.time():
        details = calculate_score(user_id, repo.list_for_user(user_id), rules, as_of=as_of)

    duration_ms = (time.perf_counter() - start_time) * 1000
    record_score(details.classification, len(details.skipped_debt_ids))
    log_score(
        get_request_id(request),
        user_id,
        details.score,
        details.classification,
        details.skipped_debt_ids,
        duration_ms,
    )

    return ScoreResponse.from_domain(user_id, details)
