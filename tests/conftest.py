"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite file with the full schema, including the
overlap triggers, and the app's ``get_db`` dependency pointed at it.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import secrets  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from pestbook.config import SESSION_COOKIE_NAME  # noqa: E402
from pestbook.database import Base, build_engine, get_db  # noqa: E402
from pestbook.domain.access import Actor, parse_roles  # noqa: E402
from pestbook.main import app  # noqa: E402
from pestbook.models import AuthSession, Service, User, UserRole  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'pestbook_test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


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


@pytest.fixture(autouse=True)
def override_db(session_factory):
    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    """Create a user holding ``roles``"""
    counter = {"n": 0}

    def _make_user(*roles, email=None, first_name="Test", last_name=None, address=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@example.com",
            first_name=first_name,
            last_name=last_name or f"User{counter['n']}",
            address=address,
        )
        db.add(user)
        db.flush()
        for role in roles:
            db.add(UserRole(user_id=user.id, role=role))
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def actor_for():
    def _actor_for(user, *roles):
        return Actor(
            user_id=user.id,
            public_id=user.public_id,
            email=user.email,
            roles=parse_roles(roles or user.role_names),
        )

    return _actor_for


@pytest.fixture
def login(db):
    """Return a TestClient carrying a fresh session cookie for ``user``"""

    def _login(user, expires_in=timedelta(hours=1)):
        token = secrets.token_urlsafe(32)
        db.add(
            AuthSession(
                id=token,
                user_id=user.id,
                expires_at=datetime.now(timezone.utc) + expires_in,
            )
        )
        db.commit()
        return TestClient(app, cookies={SESSION_COOKIE_NAME: token})

    return _login


@pytest.fixture
def anon():
    return TestClient(app)


@pytest.fixture
def customer(make_user):
    return make_user("customer", address="12 Elm Street, Springfield")


@pytest.fixture
def other_customer(make_user):
    return make_user("customer", address="99 Oak Avenue, Springfield")


@pytest.fixture
def admin(make_user):
    return make_user("admin", address="1 Main Street, Springfield")


@pytest.fixture
def superuser(make_user):
    return make_user("superuser")


@pytest.fixture
def worker(make_user):
    return make_user("worker", first_name="Wanda")


@pytest.fixture
def second_worker(make_user):
    return make_user("worker", first_name="Walter")


@pytest.fixture
def pest_service(db):
    service = Service(
        title="General Pest Treatment",
        description="Interior and exterior treatment",
        duration_minutes=60,
        sort_order=1,
        is_active=True,
    )
    db.add(service)
    db.commit()
    db.refresh(service)
    return service
