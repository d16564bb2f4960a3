"""Pytest fixtures for testing"""

import os

# Point the app at SQLite before library_loans.config is imported
os.environ.setdefault("LIBRARY_DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("LIBRARY_AUTO_CREATE_SCHEMA", "false")

import threading
import pytest
from contextlib import contextmanager
from datetime import date
from typing import Callable, ContextManager, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from library_loans.api.dependencies import get_today
from library_loans.api.main import create_app
from library_loans.domain.models import Book, Borrower
from library_loans.infrastructure.database.locks import RowLockRegistry
from library_loans.infrastructure.database.models import Base
from library_loans.infrastructure.database.session import get_db
from library_loans.services.catalog import CatalogService
from library_loans.services.loans import LoanService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "today" for every date-dependent rule
TODAY = date(2025, 3, 10)


class Clock:
    """Mutable clock so tests can create loans, then jump forward in time"""

    def __init__(self, today: date):
        self.current = today

    def __call__(self) -> date:
        return self.current


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
def session_factory(db: Session) -> sessionmaker:
    """Sessionmaker over the same test database, for multi-session tests"""
    return TestingSessionLocal


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clock(today: date) -> Clock:
    return Clock(today)


@pytest.fixture
def loan_service(db: Session, clock: Clock) -> LoanService:
    return LoanService(db, today=clock)


@pytest.fixture
def catalog(db: Session) -> CatalogService:
    return CatalogService(db)


@pytest.fixture
def make_book(catalog: CatalogService) -> Callable[..., Book]:
    counter = {"n": 0}

    def _make(title: str | None = None, genre: str = "fiction") -> Book:
        counter["n"] += 1
        return catalog.create_book(
            title=title or f"Book {counter['n']}",
            author="Test Author",
            genre=genre,
        )

    return _make


@pytest.fixture
def make_borrower(catalog: CatalogService) -> Callable[..., Borrower]:
    counter = {"n": 0}

    def _make(name: str | None = None) -> Borrower:
        counter["n"] += 1
        return catalog.create_borrower(
            name=name or f"Borrower {counter['n']}",
            email=f"borrower{counter['n']}@example.com",
        )

    return _make


@pytest.fixture
def client(db: Session, clock: Clock) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: clock
    return TestClient(app)


@pytest.fixture
def hold_row() -> Callable[[RowLockRegistry, str, int], ContextManager[None]]:
    """Keep a row locked from another thread for the duration of a with-block"""

    @contextmanager
    def _hold(locks: RowLockRegistry, table: str, row_id: int):
        held = threading.Event()
        release = threading.Event()

        def holder():
            with locks.hold(table, row_id, timeout=1.0):
                held.set()
                release.wait(timeout=5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(timeout=5)
        try:
            yield
        finally:
            release.set()
            thread.join()

    return _hold
