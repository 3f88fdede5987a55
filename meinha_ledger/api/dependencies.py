"""Dependency injection for FastAPI endpoints"""

import logging
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session
from meinha_ledger.domain.exceptions import InvalidScoreRulesError
from meinha_ledger.domain.rules import ScoreRules
from meinha_ledger.infrastructure.clients.users import UserDirectoryClient
from meinha_ledger.infrastructure.database.repositories import DebtRepository, SettingsRepository
from meinha_ledger.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_directory() -> UserDirectoryClient:
    """Provide user directory client instance"""
    return UserDirectoryClient()


def get_debt_repository(db: Session = Depends(get_db)) -> DebtRepository:
    return DebtRepository(db)


def get_settings_repository(db: Session = Depends(get_db)) -> SettingsRepository:
    return SettingsRepository(db)


def get_score_rules(
    request: Request,
    settings_repo: SettingsRepository = Depends(get_settings_repository),
) -> ScoreRules:
    """Current rule set; a corrupt stored document refuses to score"""
    try:
        return settings_repo.load_rules()
    except InvalidScoreRulesError as e:
        logging.error(f"Stored score rules are invalid: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=500, detail="Score rules are misconfigured")
