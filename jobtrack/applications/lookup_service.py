"""Lookup tables: job titles and job application statuses."""
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..common.errors import NotFoundError, ValidationError
from .models import DEFAULT_JOB_STATUSES, JobStatus, Title

logger = logging.getLogger(__name__)


def seed_statuses(session: Session) -> int:
    """Insert any missing default statuses. Returns how many were added."""
    existing = set(session.scalars(select(JobStatus.name)).all())
    added = 0
    for name in DEFAULT_JOB_STATUSES:
        if name not in existing:
            session.add(JobStatus(name=name))
            added += 1
    if added:
        session.flush()
        logger.info(f"Seeded {added} job statuses")
    return added


def list_statuses(session: Session) -> list[JobStatus]:
    return list(session.scalars(select(JobStatus).order_by(JobStatus.name)).all())


def get_status_by_name(session: Session, name: str) -> JobStatus:
    status = session.scalars(
        select(JobStatus).where(JobStatus.name == name.strip().upper())
    ).first()
    if status is None:
        raise NotFoundError("Status", name)
    return status


def add_title(session: Session, name: str) -> Title:
    """Get-or-create a job title by exact name."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("title", "must not be empty")
    title = session.scalars(select(Title).where(Title.name == name)).first()
    if title is None:
        title = Title(name=name)
        session.add(title)
        session.flush()
        logger.debug(f"Added title '{name}'")
    return title


def get_title(session: Session, title_id: int) -> Title:
    title = session.get(Title, title_id)
    if title is None:
        raise NotFoundError("Title", title_id)
    return title


def list_titles(session: Session) -> list[Title]:
    return list(session.scalars(select(Title).order_by(Title.name)).all())
