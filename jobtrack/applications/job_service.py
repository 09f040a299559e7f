"""Job applications: CRUD, filtered listing and insight counts.

list_jobs() is how the CLI resolves a user's filter flags to candidate jobs;
the stage commands only need the id of the job picked from that list.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..common.errors import NotFoundError, ValidationError
from .lookup_service import add_title, get_status_by_name
from .models import (
    TIMESTAMP_FORMAT,
    InterviewStage,
    Job,
    JobStatus,
    Sprint,
    Title,
)
from .sprint_service import decrement_num_jobs, increment_num_jobs
from .stage_service import UNSET

logger = logging.getLogger(__name__)


@dataclass
class JobQuery:
    """Filter flags. Text fields match partially and case-insensitively.

    stages: None = no filter, 0 = jobs with at least one stage,
    n > 0 = jobs with exactly n stages.
    """
    company: Optional[str] = None
    link: Optional[str] = None
    notes: Optional[str] = None
    sprint: Optional[str] = None
    status: Optional[str] = None
    title: Optional[str] = None
    stages: Optional[int] = None


@dataclass
class JobRow:
    id: int
    created: str
    company_name: str
    title: Optional[str]
    status: Optional[str]
    stages: Optional[int]  # None when the job has no stages
    link: Optional[str]
    notes: Optional[str]


@dataclass
class CountAndPercentage:
    label: str
    count: int
    sprint_percentage: str
    overall_percentage: str


def _percent(part: int, whole: int) -> str:
    if not whole:
        return "0.00%"
    return f"{part / whole * 100:.2f}%"


def get_job(session: Session, job_id: int) -> Job:
    job = session.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


def add_job(
    session: Session,
    company_name: str,
    title: str,
    status: str,
    sprint: Sprint,
    link: Optional[str] = None,
    notes: Optional[str] = None,
) -> Job:
    """Track a new application in the given sprint."""
    company_name = (company_name or "").strip()
    if not company_name:
        raise ValidationError("company", "must not be empty")

    job = Job(
        created=datetime.now().strftime(TIMESTAMP_FORMAT),
        company_name=company_name,
        title_id=add_title(session, title).id,
        status_id=get_status_by_name(session, status).id,
        link=(link or "").strip() or None,
        notes=(notes or "").strip() or None,
        sprint_id=sprint.id,
    )
    session.add(job)
    session.flush()
    increment_num_jobs(session, sprint.id)
    logger.info(f"Added job {job.id} '{company_name}' to sprint '{sprint.name}'")
    return job


def update_job(
    session: Session,
    job_id: int,
    *,
    company_name: Any = UNSET,
    title: Any = UNSET,
    status: Any = UNSET,
    link: Any = UNSET,
    notes: Any = UNSET,
    sprint: Any = UNSET,
) -> Job:
    """Partial update. Moving a job between sprints adjusts both counters."""
    job = get_job(session, job_id)
    changed = []

    if company_name is not UNSET:
        company_name = (company_name or "").strip()
        if not company_name:
            raise ValidationError("company", "must not be empty")
        job.company_name = company_name
        changed.append("company_name")
    if title is not UNSET:
        job.title_id = add_title(session, title).id
        changed.append("title")
    if status is not UNSET:
        job.status_id = get_status_by_name(session, status).id
        changed.append("status")
    if link is not UNSET:
        job.link = (link or "").strip() or None
        changed.append("link")
    if notes is not UNSET:
        job.notes = (notes or "").strip() or None
        changed.append("notes")
    if sprint is not UNSET and sprint.id != job.sprint_id:
        decrement_num_jobs(session, job.sprint_id)
        increment_num_jobs(session, sprint.id)
        job.sprint_id = sprint.id
        changed.append("sprint")

    session.flush()
    session.expire(job, ["title", "status", "sprint"])
    if changed:
        logger.info(f"Updated job {job_id}: {', '.join(changed)}")
    return job


def delete_job(session: Session, job_id: int) -> Job:
    """Delete a job; its interview stages go with it (ON DELETE CASCADE)."""
    job = get_job(session, job_id)
    sprint_id = job.sprint_id
    session.delete(job)
    session.flush()
    decrement_num_jobs(session, sprint_id)
    logger.info(f"Deleted job {job_id} '{job.company_name}'")
    return job


def list_jobs(
    session: Session,
    query: Optional[JobQuery] = None,
    current_sprint: Optional[Sprint] = None,
) -> list[JobRow]:
    """Jobs matching the query. Without query.sprint, only the current sprint."""
    query = query or JobQuery()

    stage_count = (
        select(func.count(InterviewStage.id))
        .where(InterviewStage.job_id == Job.id)
        .correlate(Job)
        .scalar_subquery()
    )
    stmt = (
        select(
            Job.id,
            Job.created,
            Job.company_name,
            Title.name,
            JobStatus.name,
            stage_count,
            Job.link,
            Job.notes,
        )
        .outerjoin(Title, Job.title_id == Title.id)
        .outerjoin(JobStatus, Job.status_id == JobStatus.id)
        .outerjoin(Sprint, Job.sprint_id == Sprint.id)
    )

    if query.sprint:
        stmt = stmt.where(Sprint.name.ilike(f"%{query.sprint}%"))
    elif current_sprint is not None:
        stmt = stmt.where(Job.sprint_id == current_sprint.id)

    if query.company:
        stmt = stmt.where(Job.company_name.ilike(f"%{query.company}%"))
    if query.link:
        stmt = stmt.where(Job.link.ilike(f"%{query.link}%"))
    if query.notes:
        stmt = stmt.where(Job.notes.ilike(f"%{query.notes}%"))
    if query.status:
        stmt = stmt.where(JobStatus.name.ilike(f"%{query.status}%"))
    if query.title:
        stmt = stmt.where(Title.name.ilike(f"%{query.title}%"))

    if query.stages is not None:
        if query.stages == 0:
            stmt = stmt.where(stage_count > 0)
        else:
            stmt = stmt.where(stage_count == query.stages)

    rows = session.execute(stmt.order_by(Job.id)).all()
    return [
        JobRow(
            id=r[0],
            created=r[1],
            company_name=r[2],
            title=r[3],
            status=r[4],
            stages=r[5] or None,
            link=r[6],
            notes=r[7],
        )
        for r in rows
    ]


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

def count_total_jobs(session: Session) -> int:
    return session.scalar(select(func.count(Job.id))) or 0


def count_jobs_in_sprint(session: Session, sprint: Sprint) -> int:
    return session.scalar(
        select(func.count(Job.id)).where(Job.sprint_id == sprint.id)
    ) or 0


def count_jobs_per_status(session: Session, sprint: Sprint) -> list[CountAndPercentage]:
    """Job count per status within the sprint, as share of sprint and of all jobs."""
    total = count_total_jobs(session)
    in_sprint = count_jobs_in_sprint(session, sprint)

    rows = session.execute(
        select(JobStatus.name, func.count(Job.id))
        .join(JobStatus, Job.status_id == JobStatus.id)
        .where(Job.sprint_id == sprint.id)
        .group_by(JobStatus.name)
        .order_by(JobStatus.name)
    ).all()
    return [
        CountAndPercentage(
            label=name,
            count=count,
            sprint_percentage=_percent(count, in_sprint),
            overall_percentage=_percent(count, total),
        )
        for name, count in rows
    ]


def count_jobs_per_sprint(session: Session, sprint: Sprint) -> list[CountAndPercentage]:
    """Job count per sprint, relative to the given sprint and to all jobs."""
    total = count_total_jobs(session)
    in_sprint = count_jobs_in_sprint(session, sprint)

    rows = session.execute(
        select(Sprint.name, func.count(Job.id))
        .join(Sprint, Job.sprint_id == Sprint.id)
        .group_by(Sprint.name)
        .order_by(Sprint.name)
    ).all()
    return [
        CountAndPercentage(
            label=name,
            count=count,
            sprint_percentage=_percent(count, in_sprint),
            overall_percentage=_percent(count, total),
        )
        for name, count in rows
    ]
