"""Pytest fixtures for testing"""

import itertools
import pytest
from datetime import datetime, timezone
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from pinjaman_gateway.api.main import create_app
from pinjaman_gateway.infrastructure.database.models import Base
from pinjaman_gateway.infrastructure.database.session import get_db
from pinjaman_gateway.domain.actions import Action
from pinjaman_gateway.domain.models import (
    AppState,
    Borrower,
    LoanCategory,
    LoanEntry,
    LoanTransaction,
    derive_status,
)
from pinjaman_gateway.domain.reducer import reduce_state


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FIXED_NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


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
def clock() -> Callable[[], datetime]:
    """Frozen clock for reducer timestamps"""
    return lambda: FIXED_NOW


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Sequential ids: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def reduce(clock, id_factory) -> Callable[[AppState, Action], AppState]:
    """reduce_state with deterministic time and ids"""

    def _reduce(state: AppState, action: Action) -> AppState:
        return reduce_state(state, action, clock=clock, new_id=id_factory)

    return _reduce


@pytest.fixture
def borrower() -> Borrower:
    """Borrower B with a 1,000,000 soft limit"""
    return Borrower(id="b-1", name="Budi", credit_limit=1_000_000)


@pytest.fixture
def state_with_borrower(borrower: Borrower) -> AppState:
    return AppState(borrowers=(borrower,))


@pytest.fixture
def make_transaction() -> Callable[..., LoanTransaction]:
    """Factory for hand-built transactions; status follows paid/due unless given"""

    def _make(**overrides) -> LoanTransaction:
        fields = {
            "id": "t-1",
            "borrower_id": "b-1",
            "borrower_name": "Budi",
            "category": LoanCategory.GAJI,
            "total_principal": 500_000,
            "total_due": 600_000,
            "paid_amount": 0,
            "entries": (),
            "installments": (),
            "due_month": "Maret 2026",
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
            "is_arrear": False,
            "is_priority": False,
        }
        fields.update(overrides)
        if not fields["entries"]:
            fields["entries"] = (
                LoanEntry(
                    id=f"e-{fields['id']}",
                    borrower_id=fields["borrower_id"],
                    category=fields["category"],
                    principal=fields["total_principal"],
                    interest_rate=0 if fields["is_arrear"] else 20,
                    total_due_contribution=fields["total_due"],
                    date=fields["created_at"],
                ),
            )
        fields.setdefault("status", derive_status(fields["paid_amount"], fields["total_due"]))
        return LoanTransaction(**fields)

    return _make
