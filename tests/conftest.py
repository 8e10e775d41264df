from datetime import date, timedelta
import itertools

import pytest
from fastapi.testclient import TestClient

from minilibrary.core.config import Settings
from minilibrary.core.database import init_db, make_engine, make_session_factory
from minilibrary.core.security import create_access_token
from minilibrary.main import create_app
from minilibrary.models import models

TEST_SECRET = "test-secret-for-signing-tokens-0123456789"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret=TEST_SECRET,
        jwt_expiry=timedelta(hours=1),
        bcrypt_rounds=4,
        penalty_rate=2.0,
        scheduler_enabled=False,
        log_level="WARNING",
    )


@pytest.fixture
def db():
    engine = make_engine("sqlite://")
    init_db(engine)
    session = make_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def app_db(app, client):
    # same in-memory database the client talks to
    session = app.state.session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user():
    counter = itertools.count(1)

    def _make(session, role=models.Role.USER, **fields):
        n = next(counter)
        fields.setdefault("username", f"reader{n}")
        fields.setdefault("email", f"reader{n}@example.com")
        fields.setdefault("password_hash", "not-a-real-hash")
        user = models.User(role=role, **fields)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_book():
    counter = itertools.count(1)

    def _make(session, **fields):
        n = next(counter)
        fields.setdefault("title", f"Book {n}")
        fields.setdefault("author", f"Author {n}")
        fields.setdefault("genre", "Fiction")
        fields.setdefault("publication_date", date(2000, 1, n % 28 + 1))
        book = models.Book(**fields)
        session.add(book)
        session.commit()
        session.refresh(book)
        return book

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user, secret=TEST_SECRET, expires_in=timedelta(hours=1)):
        token = create_access_token(user.id, user.role, secret=secret, expires_in=expires_in)
        return {"Authorization": f"Bearer {token}"}

    return _headers
