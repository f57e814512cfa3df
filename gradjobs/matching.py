"""
Eligibility scoring between graduate CVs, job postings and other graduates.

Responsibilities:
- Score a job posting against a CV (eligibility).
- Score another graduate's CV against a CV (potential contacts).
- Filter candidate sequences by admission threshold, keeping input order.

Non-Responsibilities:
- No database access. Callers pass fully loaded value objects.
- No exclusion of closed jobs or of the seeker's own CV; callers do that.

Invariant:
Given identical inputs, every function here returns the same result
and never mutates its arguments.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Sequence

from .logger import get_logger

logger = get_logger()

GPA_BASELINE = 2.5
GPA_POINTS_PER_UNIT = 10.0
ROLE_MATCH_POINTS = 10.0
YOE_POINTS_PER_YEAR = 5.0
SKILL_MATCH_POINTS = 3.0

JOB_ADMISSION_THRESHOLD = 15.0
PEER_ADMISSION_THRESHOLD = 10.0


def _skill_set(skill_ids: Iterable[int]) -> FrozenSet[int]:
    return frozenset(skill_ids)


@dataclass(frozen=True)
class CurriculumVitae:
    """A graduate's scoring profile."""

    gpa: float
    yoe: float
    role_id: int
    skill_ids: FrozenSet[int] = field(default_factory=frozenset)
    id: Optional[int] = None
    graduate_id: Optional[int] = None

    def __post_init__(self):
        # Accept any iterable of ids; duplicates collapse.
        object.__setattr__(self, "skill_ids", _skill_set(self.skill_ids))


@dataclass(frozen=True)
class JobPosting:
    """A job posting reduced to the fields scoring looks at."""

    role_id: int
    skill_ids: FrozenSet[int] = field(default_factory=frozenset)
    id: Optional[int] = None
    title: str = ""

    def __post_init__(self):
        object.__setattr__(self, "skill_ids", _skill_set(self.skill_ids))


class ScoreBreakdown(NamedTuple):
    gpa: float
    role: float
    skills: float

    @property
    def total(self) -> float:
        return self.gpa + self.role + self.skills


def gpa_bonus(gpa: float) -> float:
    if gpa > GPA_BASELINE:
        return (gpa - GPA_BASELINE) * GPA_POINTS_PER_UNIT
    return 0.0


def role_bonus(seeker_role_id: int, candidate_role_id: int, yoe: float) -> float:
    if seeker_role_id == candidate_role_id:
        return ROLE_MATCH_POINTS + yoe * YOE_POINTS_PER_YEAR
    return 0.0


def skill_bonus(a: FrozenSet[int], b: FrozenSet[int]) -> float:
    return len(a & b) * SKILL_MATCH_POINTS


def score_job(cv: CurriculumVitae, job: JobPosting) -> ScoreBreakdown:
    """Score a job against the seeker's CV. GPA and experience are the seeker's."""
    return ScoreBreakdown(
        gpa=gpa_bonus(cv.gpa),
        role=role_bonus(cv.role_id, job.role_id, cv.yoe),
        skills=skill_bonus(cv.skill_ids, job.skill_ids),
    )


def score_peer(cv: CurriculumVitae, candidate: CurriculumVitae) -> ScoreBreakdown:
    """Score another graduate against the seeker. GPA and experience are the candidate's."""
    return ScoreBreakdown(
        gpa=gpa_bonus(candidate.gpa),
        role=role_bonus(cv.role_id, candidate.role_id, candidate.yoe),
        skills=skill_bonus(cv.skill_ids, candidate.skill_ids),
    )


def is_eligible(cv: CurriculumVitae, job: JobPosting) -> bool:
    return score_job(cv, job).total >= JOB_ADMISSION_THRESHOLD


def is_potential_friend(cv: CurriculumVitae, candidate: CurriculumVitae) -> bool:
    return score_peer(cv, candidate).total >= PEER_ADMISSION_THRESHOLD


def filter_jobs_by_eligibility(
    cv: CurriculumVitae, jobs: Sequence[JobPosting]
) -> List[JobPosting]:
    """
    Return the jobs the CV is eligible for, in input order.

    Args:
        cv: The seeker's CV
        jobs: Open job postings (closed ones already excluded)

    Returns:
        Admitted jobs, a subsequence of `jobs`
    """
    admitted = []
    for job in jobs:
        breakdown = score_job(cv, job)
        if breakdown.total >= JOB_ADMISSION_THRESHOLD:
            admitted.append(job)
        logger.debug(
            "Scored job",
            job_id=job.id,
            cv_id=cv.id,
            gpa=breakdown.gpa,
            role=breakdown.role,
            skills=breakdown.skills,
            total=breakdown.total,
        )
    return admitted


def find_potential_friends(
    cv: CurriculumVitae, candidates: Sequence[CurriculumVitae]
) -> List[CurriculumVitae]:
    """
    Return the graduates worth suggesting as contacts, in input order.

    The seeker's own CV must not be part of `candidates`.
    """
    admitted = []
    for candidate in candidates:
        breakdown = score_peer(cv, candidate)
        if breakdown.total >= PEER_ADMISSION_THRESHOLD:
            admitted.append(candidate)
        logger.debug(
            "Scored peer",
            candidate_id=candidate.id,
            cv_id=cv.id,
            total=breakdown.total,
        )
    return admitted
