# tests/conftest.py
"""
Shared fixtures: in-memory SQLite database, app wired to it, users of each role.

Run with: pytest -v
"""
import os
import tempfile

# The module-level app in quickdesk.main is built from the environment on import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "quickdesk-test-uploads"))
os.environ.setdefault("SEED_DEFAULT_DATA", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quickdesk.core.config import Settings
from quickdesk.core.database import get_db
from quickdesk.main import create_app
from quickdesk.models import Base, Category, User, UserRole
from quickdesk.services.auth_service import AuthService

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        environment="test",
        smtp_host=None,
        upload_dir=str(tmp_path / "uploads"),
        seed_default_data=False,
    )


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
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    """Session for arranging data and checking results directly."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def app(settings, session_factory):
    app = create_app(settings)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def make_user(db):
    """Factory creating a committed user."""
    counter = {"n": 0}

    def _make(role=UserRole.USER, email=None, name=None, password=DEFAULT_PASSWORD, is_active=True):
        counter["n"] += 1
        user = User(
            name=name or f"{role.value.title()} {counter['n']}",
            email=email or f"{role.value}{counter['n']}@example.com",
            password_hash=AuthService.hash_password(password),
            role=role,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def auth_headers(settings):
    """Bearer header for a user."""
    def _headers(user):
        token = AuthService.create_jwt_token(settings, user.id, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def requester(make_user):
    return make_user(UserRole.USER, email="requester@example.com", name="Rita Requester")


@pytest.fixture
def other_requester(make_user):
    return make_user(UserRole.USER, email="other@example.com", name="Oscar Other")


@pytest.fixture
def agent(make_user):
    return make_user(UserRole.AGENT, email="agent@example.com", name="Alex Agent")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@example.com", name="Ada Admin")


@pytest.fixture
def category(db, admin):
    category = Category(
        name="Technical Support",
        description="Hardware, software, and system-related issues",
        color="#3b82f6",
        is_active=True,
        created_by_id=admin.id,
    )
    db.add(category)
    db.commit()
    return category


@pytest.fixture
def create_ticket(client, auth_headers, category):
    """Create a ticket through the API and return its JSON payload."""
    def _create(user, title="Printer not working", description="My printer on the 3rd floor is jammed",
                priority="high", **extra):
        data = {
            "title": title,
            "description": description,
            "priority": priority,
            "category": str(category.id),
            **extra,
        }
        response = client.post("/api/tickets", data=data, headers=auth_headers(user))
        assert response.status_code == 201, response.text
        return response.json()["data"]["ticket"]

    return _create
