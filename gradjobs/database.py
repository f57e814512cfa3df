"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for users, jobs, CVs and the social graph.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()

job_skills_tree = Table(
    "job_skills_tree",
    Base.metadata,
    Column("job_id", Integer, ForeignKey("jobs.id"), primary_key=True),
    Column("job_skill_id", Integer, ForeignKey("job_skills.id"), primary_key=True),
)

graduate_skills_tree = Table(
    "graduate_skills_tree",
    Base.metadata,
    Column("curriculum_vitae_id", Integer, ForeignKey("curriculum_vitae.id"), primary_key=True),
    Column("job_skill_id", Integer, ForeignKey("job_skills.id"), primary_key=True),
)


class User(Base):
    """Platform account. A user can hold several roles at once."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String, nullable=False, unique=True)
    email = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    admin = Column(Boolean, nullable=False, default=False)
    graduate = Column(Boolean, nullable=False, default=False)
    employer = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self) -> dict:
        # password_hash is never serialized
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "admin": self.admin,
            "graduate": self.graduate,
            "employer": self.employer,
        }


class JobRole(Base):
    __tablename__ = "job_roles"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class JobSkill(Base):
    __tablename__ = "job_skills"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


class Job(Base):
    """Job posting model."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    yoe = Column(Float, nullable=False)  # minimum years of experience
    role_id = Column(Integer, ForeignKey("job_roles.id"), nullable=False)
    is_recruiting = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    role = relationship("JobRole")
    skills = relationship("JobSkill", secondary=job_skills_tree, order_by="JobSkill.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "yoe": self.yoe,
            "role_id": self.role_id,
            "role": self.role.to_dict() if self.role else None,
            "tree": [s.to_dict() for s in self.skills],
            "is_recruiting": self.is_recruiting,
        }


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(Integer, primary_key=True)
    graduate_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    graduate = relationship("User")
    job = relationship("Job")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "graduate_id": self.graduate_id,
            "job_id": self.job_id,
            "graduate": self.graduate.to_dict() if self.graduate else None,
            "job": self.job.to_dict() if self.job else None,
        }


class Friendship(Base):
    __tablename__ = "friendships"

    id = Column(Integer, primary_key=True)
    from_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    from_user = relationship("User", foreign_keys=[from_id])
    to_user = relationship("User", foreign_keys=[to_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from": self.from_id,
            "to": self.to_id,
            "from_user": self.from_user.to_dict() if self.from_user else None,
            "to_user": self.to_user.to_dict() if self.to_user else None,
        }


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class GraduateCV(Base):
    """Curriculum vitae submitted by a graduate (one per graduate)."""

    __tablename__ = "curriculum_vitae"

    id = Column(Integer, primary_key=True)
    gpa = Column(Float, nullable=False)
    yoe = Column(Float, nullable=False)
    graduate_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    job_role_id = Column(Integer, ForeignKey("job_roles.id"), nullable=False)

    graduate = relationship("User")
    job_role = relationship("JobRole")
    skills = relationship("JobSkill", secondary=graduate_skills_tree, order_by="JobSkill.id")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "gpa": self.gpa,
            "yoe": self.yoe,
            "graduate_id": self.graduate_id,
            "job_role_id": self.job_role_id,
            "user": self.graduate.to_dict() if self.graduate else None,
            "job_role": self.job_role.to_dict() if self.job_role else None,
            "tree": [s.to_dict() for s in self.skills],
        }


def get_engine(db_path: Path):
    """
    Create an engine for a SQLite database file.

    check_same_thread is off so one engine can serve Flask's threaded
    dev server; each request still gets its own session.
    """
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def make_session_factory(db_path: Path) -> sessionmaker:
    """Return a sessionmaker bound to the database at db_path."""
    return sessionmaker(bind=get_engine(db_path), expire_on_commit=False)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    return make_session_factory(db_path)()
