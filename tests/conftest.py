"""
Pytest configuration and shared fixtures.
"""

import pytest
from pathlib import Path
from typing import Dict

from gradjobs.api import create_app
from gradjobs.auth import Passport, hash_password, issue_token
from gradjobs.database import get_session, init_database
from gradjobs.env import Config
from gradjobs import storage

TEST_SECRET = "test-secret"


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialized temporary SQLite database."""
    path = tmp_path / "test.db"
    init_database(path)
    return path


@pytest.fixture
def db_session(db_path):
    """Session on the temporary database."""
    session = get_session(db_path)
    yield session
    session.close()


@pytest.fixture
def config(db_path) -> Config:
    return Config(db_path=db_path, secret_key=TEST_SECRET)


@pytest.fixture
def app(config):
    app = create_app(config)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(db_session):
    """Factory creating users directly in the database."""
    def _make(username: str, password: str = "secret", **roles):
        return storage.create_user(
            db_session,
            username=username,
            email=f"{username}@example.com",
            password_hash=hash_password(password),
            **roles,
        )
    return _make


def _bearer(user) -> Dict[str, str]:
    token = issue_token(Passport.from_user(user), TEST_SECRET)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_header():
    """Builds an Authorization header for a user."""
    return _bearer


@pytest.fixture
def reference_data(db_session):
    """Two roles and four skills."""
    backend = storage.create_role(db_session, "backend developer")
    data = storage.create_role(db_session, "data analyst")
    skills = [storage.create_skill(db_session, name) for name in ("python", "sql", "go", "excel")]
    return {"backend": backend, "data": data, "skills": skills}
