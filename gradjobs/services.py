"""
Business rules between the HTTP layer and storage.

Each function validates its input, enforces the platform rules
(uniqueness, existence of referenced rows, ownership) and delegates
persistence to storage.py. Errors are raised as GradJobsError
subclasses; the API layer turns them into responses.
"""

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from . import storage
from .auth import Passport, hash_password, issue_token, verify_password
from .database import Friendship, GraduateCV, Job, JobApplication, Message, User
from .env import Config
from .errors import AuthError, ConflictError, NotFoundError, ValidationError
from .logger import get_logger
from .matching import (
    ScoreBreakdown,
    filter_jobs_by_eligibility,
    find_potential_friends,
    score_job,
    score_peer,
)
from .notify import send_registration_email
from .schema import (
    validate_cv,
    validate_friendship,
    validate_id_fields,
    validate_job,
    validate_login,
    validate_message,
    validate_name,
    validate_registration,
)

logger = get_logger()


def _check(errors: List[str]) -> None:
    if errors:
        raise ValidationError.from_errors(errors)


# Accounts

def _create_account(session: Session, data: Dict[str, Any], **roles) -> User:
    _check(validate_registration(data))

    username = data["username"].strip()
    if storage.find_user_by_username(session, username) is not None:
        raise ConflictError(f"User with username '{username}' already exists")

    return storage.create_user(
        session,
        username=username,
        email=data["email"].strip(),
        password_hash=hash_password(data["password"]),
        **roles,
    )


def register_user(session: Session, data: Dict[str, Any], config: Config) -> User:
    """Self-service registration. An `admin` flag in the payload is ignored."""
    user = _create_account(
        session,
        data,
        graduate=data.get("graduate", False),
        employer=data.get("employer", False),
    )
    logger.info("User registered", user_id=user.id, username=user.username)
    send_registration_email(config, user.email, user.username)
    return user


def create_admin(session: Session, data: Dict[str, Any]) -> User:
    """Create an administrator account. Only reachable from the CLI."""
    user = _create_account(session, data, admin=True)
    logger.info("Admin created", user_id=user.id, username=user.username)
    return user


def login(session: Session, data: Dict[str, Any], config: Config) -> str:
    _check(validate_login(data))

    user = storage.find_user_by_username(session, data["username"].strip())
    if user is None or not verify_password(data["password"], user.password_hash):
        raise AuthError("Invalid Username or Password")

    return issue_token(Passport.from_user(user), config.secret_key, config.token_ttl_minutes)


# Reference data

def create_role(session: Session, data: Dict[str, Any]):
    _check(validate_name(data))
    return storage.create_role(session, data["name"].strip())


def create_skill(session: Session, data: Dict[str, Any]):
    _check(validate_name(data))
    return storage.create_skill(session, data["name"].strip())


def _require_role_row(session: Session, role_id: int) -> None:
    if storage.get_role(session, role_id) is None:
        raise NotFoundError(f"Job role {role_id} not found")


def _require_skill(session: Session, skill_id: int):
    skill = storage.get_skill(session, skill_id)
    if skill is None:
        raise NotFoundError(f"Skill {skill_id} not found")
    return skill


# Jobs

def post_job(session: Session, data: Dict[str, Any]) -> Job:
    _check(validate_job(data))
    _require_role_row(session, data["role_id"])
    job = storage.create_job(
        session,
        title=data["title"].strip(),
        yoe=float(data["yoe"]),
        role_id=data["role_id"],
        is_recruiting=data.get("is_recruiting", True),
    )
    logger.info("Job posted", job_id=job.id, role_id=job.role_id)
    return job


def attach_job_skill(session: Session, data: Dict[str, Any]) -> Job:
    _check(validate_id_fields(data, ["job_id", "job_skill_id"]))
    job = storage.get_job(session, data["job_id"])
    if job is None:
        raise NotFoundError(f"Job {data['job_id']} not found")
    storage.add_job_skill(session, job, _require_skill(session, data["job_skill_id"]))
    return job


def set_recruiting(session: Session, data: Dict[str, Any]) -> Job:
    _check(validate_id_fields(data, ["id"]))
    if not isinstance(data.get("is_recruiting"), bool):
        raise ValidationError("Field 'is_recruiting' must be a boolean")
    job = storage.set_job_recruiting(session, data["id"], data["is_recruiting"])
    logger.info("Job recruiting status changed", job_id=job.id, is_recruiting=job.is_recruiting)
    return job


# Applications

def apply_to_job(session: Session, data: Dict[str, Any]) -> JobApplication:
    _check(validate_id_fields(data, ["graduate_id", "job_id"]))
    graduate_id, job_id = data["graduate_id"], data["job_id"]

    if storage.find_applications(session, job_id=job_id, graduate_id=graduate_id):
        raise ConflictError("This graduate has already applied to this Job")

    job = storage.get_job(session, job_id)
    if job is None or not job.is_recruiting or storage.get_user(session, graduate_id) is None:
        raise ValidationError("Graduate or Job not found in the system")

    application = storage.create_application(session, graduate_id=graduate_id, job_id=job_id)
    logger.info("Application created", application_id=application.id, job_id=job_id, graduate_id=graduate_id)
    return application


def get_application(session: Session, job_id: int, graduate_id: int) -> JobApplication:
    applications = storage.find_applications(session, job_id=job_id, graduate_id=graduate_id)
    if not applications:
        raise NotFoundError("Application to this Job not found for this Graduate")
    return applications[0]


# Friendships

def add_friend(session: Session, data: Dict[str, Any]) -> Friendship:
    _check(validate_friendship(data))
    from_id, to_id = data["from"], data["to"]

    if storage.find_friendship_between(session, from_id, to_id) is not None:
        raise ConflictError("Friendship already exists")
    if storage.count_existing_users(session, [from_id, to_id]) != 2:
        raise NotFoundError("User not found in the system")

    return storage.create_friendship(session, from_id=from_id, to_id=to_id)


def get_friendship(session: Session, a: int, b: int) -> Friendship:
    friendship = storage.find_friendship_between(session, a, b)
    if friendship is None:
        raise NotFoundError("Friendship not found")
    return friendship


# Messages

def send_message(session: Session, data: Dict[str, Any]) -> Message:
    _check(validate_message(data))
    ids = {data["sender_id"], data["receiver_id"]}
    if storage.count_existing_users(session, ids) != len(ids):
        raise NotFoundError("User not found in the system")
    return storage.create_message(session, data["sender_id"], data["receiver_id"], data["message"])


def last_message_per_conversation(messages: List[Message]) -> List[Message]:
    """
    Keep the latest message of each conversation, newest conversation first.

    A conversation is the unordered pair of participants; "latest" is the
    highest message id.
    """
    latest: Dict[frozenset, Message] = {}
    for message in messages:
        key = frozenset((message.sender_id, message.receiver_id))
        current = latest.get(key)
        if current is None or message.id > current.id:
            latest[key] = message
    return sorted(latest.values(), key=lambda m: m.id, reverse=True)


# CVs

def submit_cv(session: Session, data: Dict[str, Any]) -> GraduateCV:
    _check(validate_cv(data))
    graduate_id = data["graduate_id"]

    graduate = storage.get_user(session, graduate_id)
    if graduate is None or not graduate.graduate:
        raise ValidationError(f"User {graduate_id} is not a registered graduate")
    if storage.get_cv_by_graduate(session, graduate_id) is not None:
        raise ConflictError(f"Graduate {graduate_id} already has a CV")
    _require_role_row(session, data["job_role_id"])

    skill_ids = set(data.get("skill_ids", []))
    skills = storage.get_skills(session, skill_ids)
    if len(skills) != len(skill_ids):
        missing = sorted(skill_ids - {s.id for s in skills})
        raise NotFoundError(f"Skills not found: {missing}")

    cv = storage.create_cv(
        session,
        graduate_id=graduate_id,
        gpa=float(data["gpa"]),
        yoe=float(data["yoe"]),
        job_role_id=data["job_role_id"],
        skills=skills,
    )
    logger.info("CV submitted", cv_id=cv.id, graduate_id=graduate_id)
    return cv


def get_cv(session: Session, cv_id: int) -> GraduateCV:
    cv = storage.get_cv(session, cv_id)
    if cv is None:
        raise NotFoundError(f"CV {cv_id} not found")
    return cv


def attach_cv_skill(session: Session, data: Dict[str, Any]) -> GraduateCV:
    _check(validate_id_fields(data, ["cv_id", "job_skill_id"]))
    cv = get_cv(session, data["cv_id"])
    storage.add_cv_skill(session, cv, _require_skill(session, data["job_skill_id"]))
    return cv


# Matching

def match_jobs(session: Session, graduate_id: int) -> List[Tuple[Job, ScoreBreakdown]]:
    """Open jobs the graduate is eligible for, with their scores, in job id order."""
    cv = storage.load_cv_for_graduate(session, graduate_id)
    postings = storage.load_open_jobs(session)
    admitted = filter_jobs_by_eligibility(cv, postings)
    logger.record_scoring("jobs", scored=len(postings), admitted=len(admitted))

    scores = {p.id: score_job(cv, p) for p in admitted}
    jobs = storage.get_jobs_by_ids(session, [p.id for p in admitted])
    return [(job, scores[job.id]) for job in jobs]


def match_peers(session: Session, graduate_id: int) -> List[Tuple[GraduateCV, ScoreBreakdown]]:
    """Other graduates worth suggesting as contacts, with their scores."""
    cv = storage.load_cv_for_graduate(session, graduate_id)
    candidates = storage.load_other_graduate_cvs(session, excluding_graduate_id=graduate_id)
    admitted = find_potential_friends(cv, candidates)
    logger.record_scoring("peers", scored=len(candidates), admitted=len(admitted))

    scores = {c.id: score_peer(cv, c) for c in admitted}
    cvs = storage.get_cvs_by_ids(session, [c.id for c in admitted])
    return [(row, scores[row.id]) for row in cvs]


def resolve_target_id(passport: Passport, requested_id: Optional[int]) -> int:
    """Matching routes take an optional id; without one they act on the caller."""
    return requested_id if requested_id is not None else passport.id
