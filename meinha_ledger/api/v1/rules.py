"""GET/PUT /v1/score-rules - the administrator-editable rule set"""

import logging
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from meinha_ledger.api.dependencies import get_request_id, get_score_rules, get_settings_repository
from meinha_ledger.infrastructure.database.session import get_db
from meinha_ledger.infrastructure.database.repositories import SettingsRepository
from meinha_ledger.domain.exceptions import InvalidScoreRulesError
from meinha_ledger.domain.rules import ScoreRules

router = APIRouter()


@router.get("/score-rules")
def get_rules(rules: ScoreRules = Depends(get_score_rules)) -> Dict[str, Any]:
    """Stored rule document, or the defaults when none was saved"""
    return rules.to_document()


@router.put("/score-rules")
def update_rules(
    request: Request,
    document: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    settings_repo: SettingsRepository = Depends(get_settings_repository),
) -> Dict[str, Any]:
    """Validate and replace the rule set; incomplete documents are refused"""
    try:
        saved = settings_repo.save_rules(document)
    except InvalidScoreRulesError as e:
        db.rollback()
        logging.warning(f"Rejected score rules: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=422, detail=str(e))

    db.commit()
    logging.info("Score rules updated", extra={"request_id": get_request_id(request)})
    return saved.to_document()
