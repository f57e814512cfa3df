"""
Storage helpers over the SQLAlchemy models.

Responsibilities:
- CRUD and lookup queries for every table.
- Conversion of CV and job rows into matching value objects.

Non-Responsibilities:
- No business rules (duplicates, ownership, thresholds); see services.py.

Every helper takes an explicit session; there is no module-level handle.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, selectinload

from .database import (
    Friendship,
    GraduateCV,
    Job,
    JobApplication,
    JobRole,
    JobSkill,
    Message,
    User,
)
from .errors import NotFoundError
from .matching import CurriculumVitae, JobPosting


# Users

def create_user(
    session: Session,
    username: str,
    email: str,
    password_hash: str,
    admin: bool = False,
    graduate: bool = False,
    employer: bool = False,
) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        admin=admin,
        graduate=graduate,
        employer=employer,
    )
    session.add(user)
    session.commit()
    return user


def find_user_by_username(session: Session, username: str) -> Optional[User]:
    return session.query(User).filter_by(username=username).first()


def get_user(session: Session, user_id: int) -> Optional[User]:
    return session.get(User, user_id)


def count_existing_users(session: Session, user_ids: Iterable[int]) -> int:
    ids = set(user_ids)
    return session.query(User).filter(User.id.in_(ids)).count()


def list_users(session: Session, graduate: Optional[bool] = None, employer: Optional[bool] = None) -> List[User]:
    query = session.query(User)
    if graduate is not None:
        query = query.filter(User.graduate == graduate)
    if employer is not None:
        query = query.filter(User.employer == employer)
    return query.order_by(User.id).all()


# Reference data

def create_role(session: Session, name: str) -> JobRole:
    role = JobRole(name=name)
    session.add(role)
    session.commit()
    return role


def list_roles(session: Session) -> List[JobRole]:
    return session.query(JobRole).order_by(JobRole.id).all()


def get_role(session: Session, role_id: int) -> Optional[JobRole]:
    return session.get(JobRole, role_id)


def create_skill(session: Session, name: str) -> JobSkill:
    skill = JobSkill(name=name)
    session.add(skill)
    session.commit()
    return skill


def list_skills(session: Session) -> List[JobSkill]:
    return session.query(JobSkill).order_by(JobSkill.id).all()


def get_skill(session: Session, skill_id: int) -> Optional[JobSkill]:
    return session.get(JobSkill, skill_id)


def get_skills(session: Session, skill_ids: Iterable[int]) -> List[JobSkill]:
    ids = set(skill_ids)
    if not ids:
        return []
    return session.query(JobSkill).filter(JobSkill.id.in_(ids)).order_by(JobSkill.id).all()


def seed_reference_data(session: Session, data: Dict[str, Any]) -> Dict[str, int]:
    """
    Insert job roles and skills from a dict like
    {"job_roles": ["backend developer", ...], "skills": ["python", ...]}.
    Names that already exist are skipped.

    Returns:
        Counts of inserted rows per kind
    """
    counts = {"job_roles": 0, "skills": 0}
    existing_roles = {r.name for r in list_roles(session)}
    existing_skills = {s.name for s in list_skills(session)}

    for name in data.get("job_roles", []):
        if name not in existing_roles:
            session.add(JobRole(name=name))
            existing_roles.add(name)
            counts["job_roles"] += 1
    for name in data.get("skills", []):
        if name not in existing_skills:
            session.add(JobSkill(name=name))
            existing_skills.add(name)
            counts["skills"] += 1

    session.commit()
    return counts


# Jobs

def _job_query(session: Session):
    return session.query(Job).options(selectinload(Job.role), selectinload(Job.skills))


def create_job(session: Session, title: str, yoe: float, role_id: int, is_recruiting: bool = True) -> Job:
    job = Job(title=title, yoe=yoe, role_id=role_id, is_recruiting=is_recruiting)
    session.add(job)
    session.commit()
    return job


def get_job(session: Session, job_id: int) -> Optional[Job]:
    return _job_query(session).filter(Job.id == job_id).first()


def list_jobs(session: Session, recruiting: Optional[bool] = None) -> List[Job]:
    query = _job_query(session)
    if recruiting is not None:
        query = query.filter(Job.is_recruiting == recruiting)
    return query.order_by(Job.id).all()


def get_jobs_by_ids(session: Session, job_ids: Sequence[int]) -> List[Job]:
    """Fetch jobs keeping the order of job_ids."""
    if not job_ids:
        return []
    rows = {j.id: j for j in _job_query(session).filter(Job.id.in_(job_ids)).all()}
    return [rows[i] for i in job_ids if i in rows]


def set_job_recruiting(session: Session, job_id: int, is_recruiting: bool) -> Job:
    job = get_job(session, job_id)
    if job is None:
        raise NotFoundError(f"Job {job_id} not found")
    job.is_recruiting = is_recruiting
    session.commit()
    return job


def add_job_skill(session: Session, job: Job, skill: JobSkill) -> None:
    if skill not in job.skills:
        job.skills.append(skill)
    session.commit()


# Applications

def create_application(session: Session, graduate_id: int, job_id: int) -> JobApplication:
    application = JobApplication(graduate_id=graduate_id, job_id=job_id)
    session.add(application)
    session.commit()
    return application


def find_applications(
    session: Session, job_id: Optional[int] = None, graduate_id: Optional[int] = None
) -> List[JobApplication]:
    query = session.query(JobApplication).options(
        selectinload(JobApplication.graduate),
        selectinload(JobApplication.job).selectinload(Job.role),
        selectinload(JobApplication.job).selectinload(Job.skills),
    )
    if job_id is not None:
        query = query.filter(JobApplication.job_id == job_id)
    if graduate_id is not None:
        query = query.filter(JobApplication.graduate_id == graduate_id)
    return query.order_by(JobApplication.id).all()


# Friendships

def _friendship_query(session: Session):
    return session.query(Friendship).options(
        selectinload(Friendship.from_user), selectinload(Friendship.to_user)
    )


def create_friendship(session: Session, from_id: int, to_id: int) -> Friendship:
    friendship = Friendship(from_id=from_id, to_id=to_id)
    session.add(friendship)
    session.commit()
    return friendship


def find_friendships(session: Session, user_id: Optional[int] = None) -> List[Friendship]:
    query = _friendship_query(session)
    if user_id is not None:
        query = query.filter(or_(Friendship.from_id == user_id, Friendship.to_id == user_id))
    return query.order_by(Friendship.id).all()


def find_friendship_between(session: Session, a: int, b: int) -> Optional[Friendship]:
    """Friendships are undirected: (a, b) matches (b, a) too."""
    return (
        _friendship_query(session)
        .filter(
            or_(
                and_(Friendship.from_id == a, Friendship.to_id == b),
                and_(Friendship.from_id == b, Friendship.to_id == a),
            )
        )
        .order_by(Friendship.id)
        .first()
    )


# Messages

def create_message(session: Session, sender_id: int, receiver_id: int, text: str) -> Message:
    message = Message(sender_id=sender_id, receiver_id=receiver_id, message=text)
    session.add(message)
    session.commit()
    return message


def list_messages(session: Session) -> List[Message]:
    return session.query(Message).order_by(Message.id).all()


def conversation(session: Session, a: int, b: int) -> List[Message]:
    return (
        session.query(Message)
        .filter(
            or_(
                and_(Message.sender_id == a, Message.receiver_id == b),
                and_(Message.sender_id == b, Message.receiver_id == a),
            )
        )
        .order_by(Message.id)
        .all()
    )


def messages_for_user(session: Session, user_id: int) -> List[Message]:
    return (
        session.query(Message)
        .filter(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
        .order_by(Message.id)
        .all()
    )


# CVs

def _cv_query(session: Session):
    return session.query(GraduateCV).options(
        selectinload(GraduateCV.graduate),
        selectinload(GraduateCV.job_role),
        selectinload(GraduateCV.skills),
    )


def create_cv(
    session: Session, graduate_id: int, gpa: float, yoe: float, job_role_id: int, skills: Iterable[JobSkill] = ()
) -> GraduateCV:
    cv = GraduateCV(graduate_id=graduate_id, gpa=gpa, yoe=yoe, job_role_id=job_role_id)
    cv.skills.extend(skills)
    session.add(cv)
    session.commit()
    return cv


def get_cv(session: Session, cv_id: int) -> Optional[GraduateCV]:
    return _cv_query(session).filter(GraduateCV.id == cv_id).first()


def get_cv_by_graduate(session: Session, graduate_id: int) -> Optional[GraduateCV]:
    return _cv_query(session).filter(GraduateCV.graduate_id == graduate_id).first()


def list_cvs(session: Session, excluding_graduate_id: Optional[int] = None) -> List[GraduateCV]:
    query = _cv_query(session)
    if excluding_graduate_id is not None:
        query = query.filter(GraduateCV.graduate_id != excluding_graduate_id)
    return query.order_by(GraduateCV.id).all()


def get_cvs_by_ids(session: Session, cv_ids: Sequence[int]) -> List[GraduateCV]:
    """Fetch CVs keeping the order of cv_ids."""
    if not cv_ids:
        return []
    rows = {cv.id: cv for cv in _cv_query(session).filter(GraduateCV.id.in_(cv_ids)).all()}
    return [rows[i] for i in cv_ids if i in rows]


def add_cv_skill(session: Session, cv: GraduateCV, skill: JobSkill) -> None:
    if skill not in cv.skills:
        cv.skills.append(skill)
    session.commit()


# Matching inputs

def to_profile(cv: GraduateCV) -> CurriculumVitae:
    return CurriculumVitae(
        gpa=cv.gpa,
        yoe=cv.yoe,
        role_id=cv.job_role_id,
        skill_ids=[s.id for s in cv.skills],
        id=cv.id,
        graduate_id=cv.graduate_id,
    )


def to_posting(job: Job) -> JobPosting:
    return JobPosting(
        role_id=job.role_id,
        skill_ids=[s.id for s in job.skills],
        id=job.id,
        title=job.title,
    )


def load_cv_for_graduate(session: Session, graduate_id: int) -> CurriculumVitae:
    cv = get_cv_by_graduate(session, graduate_id)
    if cv is None:
        raise NotFoundError(f"No CV found for graduate {graduate_id}")
    return to_profile(cv)


def load_open_jobs(session: Session) -> List[JobPosting]:
    """Only jobs still recruiting are candidates for matching."""
    return [to_posting(j) for j in list_jobs(session, recruiting=True)]


def load_other_graduate_cvs(session: Session, excluding_graduate_id: int) -> List[CurriculumVitae]:
    return [to_profile(cv) for cv in list_cvs(session, excluding_graduate_id=excluding_graduate_id)]
