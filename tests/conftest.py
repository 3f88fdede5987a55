"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import copy
import pytest
from datetime import date, datetime
from typing import Any, Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from meinha_ledger.api.main import create_app
from meinha_ledger.infrastructure.database.models import Base
from meinha_ledger.infrastructure.database.session import get_db
from meinha_ledger.domain.chain import open_debt
from meinha_ledger.domain.models import Debt
from meinha_ledger.domain.rules import ScoreRules, parse_rules


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Rules used by the engine tests: no small-debt weighting, no clamps
RULES_DOCUMENT: Dict[str, Any] = {
    "initialScore": 500,
    "creditorCreation": 2,
    "paymentBonus": {"early": 4, "onTime": 3, "lateTolerance": 1},
    "debtorBonus": {"early": 10, "onTime": 7, "lateTolerance": 2},
    "penalties": {
        "late1to2": -10,
        "late3to7": -25,
        "late8to30": -70,
        "late30plus": -140,
        "overdueWeekly": -10,
        "overdueMax": -80,
        "default": -300,
    },
    "valueWeights": [],
}


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def rules_document() -> Dict[str, Any]:
    """Fresh copy of the test rule document, safe to edit per test"""
    return copy.deepcopy(RULES_DOCUMENT)


@pytest.fixture
def rules(rules_document: Dict[str, Any]) -> ScoreRules:
    return parse_rules(rules_document)


@pytest.fixture
def make_debt() -> Callable[..., Debt]:
    """Factory for chain origins between alice (creditor) and bob (debtor)"""
    counter = {"n": 0}

    def _make(
        amount_cents: int = 10000,
        due_date: date = date(2026, 3, 10),
        created_at: datetime = datetime(2026, 3, 1, 12, 0),
        creditor_id: str = "alice",
        debtor_id: str = "bob",
    ) -> Debt:
        counter["n"] += 1
        return open_debt(
            creditor_id=creditor_id,
            debtor_id=debtor_id,
            amount_cents=amount_cents,
            due_date=due_date,
            now=created_at,
            id_factory=lambda: f"debt-{counter['n']}",
        )

    return _make
