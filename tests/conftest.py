"""
Shared pytest fixtures for the SpecFlow test suite.

Provides:
    - app: Flask application (session-scoped, "testing" config, in-memory SQLite)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - auth_headers: factory → Authorization headers for a role
    - caller: factory → CallerIdentity for service-level tests
    - make_document: factory → persisted Document
"""

import pytest

from specflow import create_app
from specflow.models import db as _db
from specflow.services import document_service
from specflow.services.jwt_service import generate_access_token
from specflow.services.permission import CallerIdentity, Role


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Identity helpers ─────────────────────────────────────────────────────


def _user_for(role) -> str:
    return f"{Role(role).value.lower()}-user"


@pytest.fixture()
def auth_headers():
    """Return ``headers(role, user_id=None)`` → Bearer headers for that role."""

    def _headers(role, user_id=None):
        token = generate_access_token(user_id or _user_for(role), Role(role))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def caller():
    """Return ``caller(role, user_id=None)`` → CallerIdentity."""

    def _caller(role, user_id=None):
        return CallerIdentity(user_id=user_id or _user_for(role), role=Role(role))

    return _caller


@pytest.fixture()
def make_document(caller):
    """Return ``make_document(title="Doc", body="", type=..., role="PM")``."""

    def _make(title="Doc", body="", doc_type="user-story", role="PM", **metadata):
        return document_service.create_document(
            metadata={"title": title, "type": doc_type, **metadata},
            body=body,
            actor=caller(role),
        )

    return _make
