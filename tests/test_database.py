"""
Tests for database.py - SQLite schema and models.
"""

import pytest
from datetime import datetime
from sqlalchemy.exc import IntegrityError

from gradjobs.database import (
    GraduateCV,
    Job,
    JobRole,
    JobSkill,
    Message,
    User,
    get_session,
    init_database,
)


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Test that init_database creates the tables."""
        db_path = tmp_path / "test.db"
        init_database(db_path)

        session = get_session(db_path)
        assert session.query(User).count() == 0
        assert session.query(Job).count() == 0
        assert session.query(GraduateCV).count() == 0
        session.close()

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that init_database creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_is_idempotent(self, tmp_path):
        db_path = tmp_path / "test.db"
        init_database(db_path)
        init_database(db_path)
        assert db_path.exists()


class TestModels:
    """Test model constraints, relationships and serialization."""

    @pytest.fixture
    def role(self, db_session):
        role = JobRole(name="backend developer")
        db_session.add(role)
        db_session.commit()
        return role

    def test_username_is_unique(self, db_session):
        db_session.add(User(username="alice", email="a@x.io", password_hash="h"))
        db_session.commit()

        db_session.add(User(username="alice", email="b@x.io", password_hash="h"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_user_without_required_fields_fails(self, db_session):
        db_session.add(User(username="bob"))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_user_to_dict_hides_password(self, db_session):
        user = User(username="alice", email="a@x.io", password_hash="secret-hash", graduate=True)
        db_session.add(user)
        db_session.commit()

        data = user.to_dict()
        assert data["graduate"] is True
        assert data["admin"] is False
        assert "password" not in data
        assert "password_hash" not in data

    def test_job_defaults_to_recruiting(self, db_session, role):
        job = Job(title="api dev", yoe=1.0, role_id=role.id)
        db_session.add(job)
        db_session.commit()

        saved = db_session.query(Job).filter_by(title="api dev").first()
        assert saved.is_recruiting is True
        assert saved.created_at is not None

    def test_job_skills_relationship(self, db_session, role):
        python, sql = JobSkill(name="python"), JobSkill(name="sql")
        job = Job(title="api dev", yoe=1.0, role_id=role.id, skills=[sql, python])
        db_session.add(job)
        db_session.commit()

        data = db_session.get(Job, job.id).to_dict()
        assert data["role"] == {"id": role.id, "name": "backend developer"}
        assert sorted(s["name"] for s in data["tree"]) == ["python", "sql"]

    def test_one_cv_per_graduate(self, db_session, role):
        user = User(username="alice", email="a@x.io", password_hash="h", graduate=True)
        db_session.add(user)
        db_session.commit()

        db_session.add(GraduateCV(gpa=3.0, yoe=1.0, graduate_id=user.id, job_role_id=role.id))
        db_session.commit()
        db_session.add(GraduateCV(gpa=2.0, yoe=0.0, graduate_id=user.id, job_role_id=role.id))
        with pytest.raises(IntegrityError):
            db_session.commit()

    def test_message_timestamp(self, db_session):
        before = datetime.now()
        message = Message(sender_id=1, receiver_id=2, message="hello")
        db_session.add(message)
        db_session.commit()

        assert before <= message.created_at <= datetime.now()
        assert message.to_dict()["message"] == "hello"
