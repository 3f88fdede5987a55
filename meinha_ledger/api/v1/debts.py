"""Debt ledger endpoints - open chains, apply payments, delete and override"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from meinha_ledger.api.v1.schemas import (
    ChainResponse,
    ClearOverridesResponse,
    DebtCreateRequest,
    DebtListResponse,
    DebtSchema,
    OverrideRequest,
    PaymentRequest,
    PaymentResponse,
    RejectionResponse,
)
from meinha_ledger.api.dependencies import get_debt_repository, get_request_id
from meinha_ledger.infrastructure.database.session import get_db
from meinha_ledger.infrastructure.database.repositories import DebtRepository
from meinha_ledger.domain import chain
from meinha_ledger.domain.exceptions import DebtNotFoundError, InvalidDebtError, StaleDebtError
from meinha_ledger.domain.models import Debt
from meinha_ledger.infrastructure.observability.metrics import debt_created_counter, record_payment
from meinha_ledger.infrastructure.observability.logging import log_payment

router = APIRouter()

STALE = "stale"

# Amount problems are input errors; state problems conflict with the ledger
REJECTION_STATUS = {
    chain.NON_POSITIVE_AMOUNT: 422,
    chain.EXCEEDS_REMAINING: 422,
    chain.NOT_OPEN: 409,
    chain.NOT_PAID: 409,
    chain.HAS_SUCCESSOR: 409,
    STALE: 409,
}

REJECTION_RESPONSES = {
    409: {"model": RejectionResponse},
    422: {"model": RejectionResponse},
}


def rejected(reason: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=REJECTION_STATUS.get(reason, 409),
        content=RejectionResponse(reason=reason, message=message).model_dump(),
    )


def load_debt(repo: DebtRepository, debt_id: str) -> Debt:
    try:
        return repo.get(debt_id)
    except DebtNotFoundError:
        raise HTTPException(status_code=404, detail="Debt not found")


@router.post("/debts", response_model=DebtSchema, status_code=201)
def create_debt(
    request_body: DebtCreateRequest,
    db: Session = Depends(get_db),
    repo: DebtRepository = Depends(get_debt_repository),
):
    """Open a new debt chain with a single OPEN record"""
    try:
        debt = chain.open_debt(
            creditor_id=request_body.creditor_id,
            debtor_id=request_body.debtor_id,
            amount_cents=request_body.amount_cents,
            due_date=request_body.due_date,
            description=request_body.description,
            attachment=request_body.attachment,
        )
    except InvalidDebtError as e:
        raise HTTPException(status_code=422, detail=str(e))

    repo.add(debt)
    db.commit()
    debt_created_counter.inc()

    return DebtSchema.from_domain(debt)


@router.get("/debts", response_model=DebtListResponse)
def list_debts(
    user_id: str = Query(..., description="User identifier"),
    repo: DebtRepository = Depends(get_debt_repository),
):
    """Every record where the user is creditor or debtor, oldest first"""
    debts = repo.list_for_user(user_id)
    return DebtListResponse(user_id=user_id, debts=[DebtSchema.from_domain(d) for d in debts])


@router.get("/debts/{debt_id}/chain", response_model=ChainResponse)
def get_debt_chain(debt_id: str, repo: DebtRepository = Depends(get_debt_repository)):
    debt = load_debt(repo, debt_id)
    records = repo.get_chain(debt.chain_id)
    problems = chain.verify_chain(records)
    if problems:
        logging.warning(f"Chain {debt.chain_id} is inconsistent: {problems}")
    return ChainResponse(
        chain_id=debt.chain_id,
        records=[DebtSchema.from_domain(d) for d in records],
        problems=problems,
    )


@router.post(
    "/debts/{debt_id}/payments",
    response_model=PaymentResponse,
    responses=REJECTION_RESPONSES,
)
def pay_debt(
    debt_id: str,
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    repo: DebtRepository = Depends(get_debt_repository),
):
    """
    Apply a payment to the OPEN head of a chain.

    Flow:
    1. Load the record
    2. Resolve the payment into a closed record (+ optional successor)
    3. Persist both atomically; a concurrent close surfaces as "stale"
    """
    request_id = get_request_id(request)
    debt = load_debt(repo, debt_id)

    result = chain.apply_payment(debt, request_body.amount_cents)

    if not result.ok:
        record_payment(result.reason)
        log_payment(request_id, debt_id, request_body.amount_cents, result.reason)
        return rejected(result.reason, result.message)

    try:
        repo.apply_payment(result)
        db.commit()
    except StaleDebtError as e:
        db.rollback()
        record_payment(STALE)
        logging.warning(f"Stale payment: {e}", extra={"request_id": request_id})
        return rejected(STALE, "Debt changed while paying; reload and retry")
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    outcome = "split" if result.new_record is not None else "closed"
    new_id = result.new_record.id if result.new_record is not None else None
    record_payment(outcome)
    log_payment(request_id, debt_id, request_body.amount_cents, outcome, new_id)

    return PaymentResponse(
        closed_record=DebtSchema.from_domain(result.closed_record),
        new_record=DebtSchema.from_domain(result.new_record) if result.new_record is not None else None,
    )


@router.delete("/debts/overrides", response_model=ClearOverridesResponse)
def clear_overrides(
    db: Session = Depends(get_db),
    repo: DebtRepository = Depends(get_debt_repository),
):
    """Remove every payment timing override"""
    debts = repo.list_with_overrides()
    for debt in debts:
        repo.save_override(chain.clear_payment_override(debt))
    db.commit()
    return ClearOverridesResponse(cleared=len(debts))


@router.delete("/debts/{debt_id}", status_code=204, responses=REJECTION_RESPONSES)
def delete_debt(
    debt_id: str,
    request: Request,
    db: Session = Depends(get_db),
    repo: DebtRepository = Depends(get_debt_repository),
):
    """Delete the latest record of a chain; records with successors are kept"""
    debt = load_debt(repo, debt_id)

    rejection = chain.check_deletable(debt, repo.get_chain(debt.chain_id))
    if rejection is not None:
        logging.info(
            f"Delete rejected: {rejection.message}",
            extra={"request_id": get_request_id(request), "debt_id": debt_id},
        )
        return rejected(rejection.reason, rejection.message)

    try:
        repo.delete(debt_id)
        db.commit()
    except StaleDebtError as e:
        db.rollback()
        logging.warning(f"Stale delete: {e}", extra={"request_id": get_request_id(request)})
        return rejected(STALE, "Debt changed while deleting; reload and retry")

    return Response(status_code=204)


@router.put("/debts/{debt_id}/override", response_model=DebtSchema, responses=REJECTION_RESPONSES)
def override_debt_timing(
    debt_id: str,
    request_body: OverrideRequest,
    db: Session = Depends(get_db),
    repo: DebtRepository = Depends(get_debt_repository),
):
    """Mark a paid debt as paid on time or late regardless of its dates"""
    debt = load_debt(repo, debt_id)

    result = chain.override_payment_timing(
        debt,
        was_on_time=request_body.was_on_time,
        overridden_by=request_body.overridden_by,
        reason=request_body.reason,
    )
    if isinstance(result, chain.Rejection):
        return rejected(result.reason, result.message)

    repo.save_override(result)
    db.commit()
    return DebtSchema.from_domain(result)
