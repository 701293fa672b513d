import os
from datetime import date

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from finance_tracker.db.core import Base, UserDB, get_db
from finance_tracker.main import app
from finance_tracker.routers.deps import get_today
from finance_tracker.services.notifications import NotificationService

TODAY = date(2024, 1, 15)
PASSWORD = "Secret123"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db_session):
    """A bare user row for tests that work below the HTTP layer"""
    db_user = UserDB(name="Direct User", email="direct@example.com", password_hash="x", preferences={})
    db_session.add(db_user)
    db_session.commit()
    return db_user


@pytest.fixture
def notifications():
    service = NotificationService()
    app.state.notifications = service
    return service


@pytest.fixture
def client(session_factory, notifications):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email: str, name: str = "Test User", password: str = PASSWORD) -> dict:
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.text
    token = response.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(client):
    return register(client, "alice@example.com", name="Alice")


@pytest.fixture
def other_headers(client):
    return register(client, "bob@example.com", name="Bob")
