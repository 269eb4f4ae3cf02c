"""
Pytest fixtures for Enclave testing.

Provides a test database, a Flask app client with a fake extractor,
and helpers for signed-in users and sample records.
"""

import json
import os
from contextlib import ExitStack
from unittest.mock import patch

# The module-level engine is built from the environment on first import.
os.environ["ENCLAVE_DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from enclave.config import AuthConfig, StarterConfig, load_settings
from enclave.database.schema import (
    Base,
    CharacterRecord,
    ClassRecord,
    MissionRecord,
    NavItemRecord,
    PageRecord,
    RulesPdfRecord,
)
from enclave.models.context import RequestContext
from enclave.resources import auth as accounts
from enclave.resources.auth import ACCESS_COOKIE
from enclave.resources.profiles import get_or_create_profile


# ============== SHARED TEST DATABASE ==============

_test_engine = None
_test_session_factory = None

SESSION_USERS = [
    "enclave.database.get_session",
    "enclave.database.db.get_session",
    "enclave.web.auth.get_session",
    "enclave.web.routes.main.get_session",
    "enclave.web.routes.auth.get_session",
    "enclave.web.routes.profile.get_session",
    "enclave.web.routes.characters.get_session",
    "enclave.web.routes.classes.get_session",
    "enclave.web.routes.missions.get_session",
    "enclave.web.routes.lfg.get_session",
    "enclave.web.routes.pages.get_session",
    "enclave.web.routes.rules.get_session",
    "enclave.web.routes.nav.get_session",
]


def get_test_engine():
    """Get or create the shared test engine."""
    global _test_engine
    if _test_engine is None:
        _test_engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(_test_engine)
    return _test_engine


def get_test_session_factory():
    """Get or create the shared session factory."""
    global _test_session_factory
    if _test_session_factory is None:
        _test_session_factory = sessionmaker(bind=get_test_engine())
    return _test_session_factory


def reset_test_database():
    """Reset the test database (drop and recreate all tables)."""
    engine = get_test_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)


def mock_get_session():
    """Mock get_session that returns a session from the test database."""
    return get_test_session_factory()()


# ============== FAKE EXTRACTOR ==============

class FakeExtractor:
    """Stands in for the language model: returns ``payload`` or raises ``error``."""

    def __init__(self, payload=None):
        self.payload = payload or {}
        self.error = None
        self.calls = []

    def extract(self, text, schema):
        self.calls.append((text, schema))
        if self.error is not None:
            raise self.error
        return json.loads(json.dumps(self.payload))


# ============== DATABASE FIXTURES ==============

@pytest.fixture(scope="function", autouse=True)
def reset_db():
    """Reset the database before each test."""
    reset_test_database()
    yield


@pytest.fixture(scope="function")
def test_session():
    """Create a database session for testing."""
    session = mock_get_session()
    yield session
    session.close()


@pytest.fixture
def extractor():
    return FakeExtractor()


@pytest.fixture
def settings(tmp_path):
    settings = load_settings({
        "ENCLAVE_DATABASE_URL": "sqlite://",
        "ENCLAVE_SECRET_KEY": "test-secret",
        "ENCLAVE_STORAGE_DIR": str(tmp_path / "storage"),
    })
    return settings


@pytest.fixture(scope="function")
def app(settings, extractor):
    """Create a Flask app configured for testing."""
    with ExitStack() as stack:
        # Patch get_session in all the places it's used
        for target in SESSION_USERS:
            stack.enter_context(patch(target, mock_get_session))
        from enclave.web.app import create_app
        flask_app = create_app(settings, extractor=extractor)
        flask_app.config["TESTING"] = True
        yield flask_app


@pytest.fixture(scope="function")
def client(app):
    """Create a test client for the Flask app."""
    return app.test_client()


# ============== ACCOUNT FIXTURES ==============

@pytest.fixture
def make_account(test_session):
    """Create a confirmed user with a profile and a live token pair."""
    def _make(email="agent@example.com", password="secret-pass", admin=False, name=None):
        user = accounts.sign_up(test_session, email, password)
        tokens = accounts.sign_in(test_session, email, password, AuthConfig())
        profile = get_or_create_profile(test_session, user, StarterConfig())
        if admin:
            profile.role = "admin"
        if name:
            profile.name = name
        test_session.commit()
        ctx = RequestContext(
            user_id=user.id,
            profile_id=profile.id,
            role=profile.role,
            profile_name=profile.name,
        )
        return {"user": user, "profile": profile, "tokens": tokens, "ctx": ctx}

    return _make


@pytest.fixture
def user_account(make_account):
    return make_account()


@pytest.fixture
def admin_account(make_account):
    return make_account(email="admin@example.com", admin=True, name="Overseer")


@pytest.fixture
def login(client):
    """Sign the test client in as the given account."""
    def _login(account):
        client.set_cookie(ACCESS_COOKIE, account["tokens"].access_token)
        return client

    return _login


# ============== SAMPLE DATA FIXTURES ==============

@pytest.fixture
def make_character(test_session):
    def _make(profile, name, is_public=False, **fields):
        character = CharacterRecord(creator_id=profile.id, name=name, is_public=is_public, **fields)
        test_session.add(character)
        test_session.commit()
        return character

    return _make


@pytest.fixture
def sample_class(test_session, admin_account):
    """A released class with a PDF path, owned by the admin."""
    cls = ClassRecord(
        name="Gunslinger",
        teaser="Fast hands, faster mouth.",
        description="Full class text.",
        abilities_json=json.dumps([{"name": "Quickdraw", "description": "Shoot first."}]),
        gear_json=json.dumps([{"name": "Revolver", "description": "Six shots."}]),
        status="release",
        is_public=True,
        is_player_created=False,
        rules_edition="advent",
        rules_version="v1",
        created_by=admin_account["profile"].id,
        pdf_storage_path="1/123-gunslinger.pdf",
    )
    test_session.add(cls)
    test_session.commit()
    return cls


@pytest.fixture
def sample_page(test_session):
    def _make(slug="about", access_level="public", is_published=True, title="About"):
        page = PageRecord(
            title=title,
            slug=slug,
            content=f"{title} content",
            access_level=access_level,
            is_published=is_published,
        )
        test_session.add(page)
        test_session.commit()
        return page

    return _make


@pytest.fixture
def make_nav_item(test_session):
    def _make(label, type="link", **fields):
        fields.setdefault("url", "/somewhere" if type == "link" else None)
        item = NavItemRecord(label=label, type=type, **fields)
        test_session.add(item)
        test_session.commit()
        return item

    return _make


@pytest.fixture
def sample_rules_pdf(test_session):
    pdf = RulesPdfRecord(title="Core Rules", edition="advent", storage_path="1/1-core.pdf", is_active=True)
    test_session.add(pdf)
    test_session.commit()
    return pdf


@pytest.fixture
def sample_mission(test_session, user_account):
    mission = MissionRecord(
        creator_id=user_account["profile"].id,
        name="Into the Vault",
        outcome="success",
        summary="We went in. We came out.",
        is_public=True,
    )
    test_session.add(mission)
    test_session.commit()
    return mission


@pytest.fixture
def other_profile(test_session, make_account):
    return make_account(email="other@example.com", name="Stranger")["profile"]


