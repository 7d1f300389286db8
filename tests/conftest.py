"""
Pytest fixtures for testing
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from subledger.infrastructure.db.session import Base
from subledger.infrastructure.db.models import User


@pytest.fixture
def db_engine():
    """In-memory SQLite engine; StaticPool keeps one connection for TestClient threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False, autocommit=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def user(db_session):
    """Owner with id=1 (committed: use cases commit/rollback per unit)"""
    u = User(id=1, username="alice", email="alice@example.com")
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def other_user(db_session):
    u = User(id=2, username="bob")
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def client(db_session, user):
    """TestClient с подменой сессии БД и текущего владельца"""
    from subledger.main import app
    from subledger.api.deps import get_db, get_current_user

    def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_asset(db_session, user):
    """Factory: asset with opening balance, committed"""
    from subledger.application.assets import CreateAssetUseCase

    def _make(name="Bank card", balance="100.00", asset_type="bank", user_id=None):
        return CreateAssetUseCase(db_session).execute(
            user_id=user_id or user.id,
            name=name,
            asset_type=asset_type,
            balance=balance,
        )
    return _make


@pytest.fixture
def make_subscription(db_session, user):
    """Factory: subscription, committed"""
    from subledger.application.subscriptions import CreateSubscriptionUseCase

    def _make(
        next_billing_date,
        asset_id=None,
        name="Netflix",
        amount="15.00",
        billing_cycle="monthly",
        auto_renew=True,
        status="active",
        category="video",
        user_id=None,
    ):
        return CreateSubscriptionUseCase(db_session).execute(
            user_id=user_id or user.id,
            name=name,
            category=category,
            amount=amount,
            billing_cycle=billing_cycle,
            next_billing_date=next_billing_date,
            auto_renew=auto_renew,
            asset_id=asset_id,
            status=status,
        )
    return _make
