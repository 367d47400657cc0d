"""
Shared fixtures: an in-memory database per test and an API client bound to it.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from tripledger.core.security import create_access_token
from tripledger.db.base import Base
from tripledger.db.session import get_db, init_db, make_engine
from tripledger.main import app
from tripledger.models.user import User
from tripledger.services import membership_service


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db, name: str) -> User:
    user = User(name=name, email=f"{name.lower()}@example.com")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _auth_headers(user_id: int) -> dict:
    token = create_access_token({"sub": str(user_id), "user_id": user_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def party(db):
    """A trip created by P with D1, D2 and D3 as active members."""
    payer = _make_user(db, "P")
    d1 = _make_user(db, "D1")
    d2 = _make_user(db, "D2")
    d3 = _make_user(db, "D3")
    trip = membership_service.create_trip("Goa", payer.id, db, currency="INR")
    for user in (d1, d2, d3):
        membership_service.add_member(trip.id, payer.id, db, user_id=user.id)
    return {"trip": trip, "P": payer, "D1": d1, "D2": d2, "D3": d3}


@pytest.fixture
def make_user(db):
    """Factory for users stored in the test database."""
    return lambda name: _make_user(db, name)


@pytest.fixture
def auth_headers():
    """Factory for bearer headers as issued by the auth provider."""
    return _auth_headers
