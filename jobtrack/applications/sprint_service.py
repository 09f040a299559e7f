"""Sprint bookkeeping.

A sprint is a named period new applications are filed under. The name of
the current one lives in the config file; this module only touches the
sprints table.
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..common.errors import NotFoundError, SprintNameConflictError, ValidationError
from .models import DATE_FORMAT, Sprint

logger = logging.getLogger(__name__)


def _today() -> str:
    return date.today().strftime(DATE_FORMAT)


def get_sprint_by_name(session: Session, name: str) -> Optional[Sprint]:
    return session.scalars(select(Sprint).where(Sprint.name == name)).first()


def get_sprint(session: Session, sprint_id: int) -> Sprint:
    sprint = session.get(Sprint, sprint_id)
    if sprint is None:
        raise NotFoundError("Sprint", sprint_id)
    return sprint


def add_sprint(
    session: Session,
    name: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Sprint:
    """Insert a new sprint. Names are unique."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("sprint name", "must not be empty")
    if get_sprint_by_name(session, name) is not None:
        raise SprintNameConflictError(name)

    sprint = Sprint(
        name=name,
        start_date=start_date or _today(),
        end_date=end_date,
        num_jobs=0,
    )
    session.add(sprint)
    session.flush()
    logger.info(f"Added sprint '{name}'")
    return sprint


def get_or_create_sprint(session: Session, name: str) -> Sprint:
    """Return the sprint called name, creating it (starting today) if missing."""
    sprint = get_sprint_by_name(session, name)
    if sprint is None:
        sprint = add_sprint(session, name)
    return sprint


def list_sprints(session: Session) -> list[Sprint]:
    return list(
        session.scalars(select(Sprint).order_by(Sprint.start_date, Sprint.id)).all()
    )


def update_sprint(
    session: Session,
    sprint_id: int,
    name: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Sprint:
    sprint = get_sprint(session, sprint_id)
    if name is not None and name != sprint.name:
        if get_sprint_by_name(session, name) is not None:
            raise SprintNameConflictError(name)
        sprint.name = name
    if start_date is not None:
        sprint.start_date = start_date
    if end_date is not None:
        sprint.end_date = end_date
    session.flush()
    return sprint


def start_new_sprint(
    session: Session,
    name: Optional[str] = None,
    previous: Optional[Sprint] = None,
) -> Sprint:
    """Create a sprint (default name: today's date) and close the previous one."""
    today = _today()
    sprint = add_sprint(session, name or today, start_date=today)
    if previous is not None and previous.id != sprint.id and previous.end_date is None:
        previous.end_date = today
        session.flush()
        logger.info(f"Closed sprint '{previous.name}' on {today}")
    return sprint


def increment_num_jobs(session: Session, sprint_id: int) -> None:
    session.execute(
        update(Sprint)
        .where(Sprint.id == sprint_id)
        .values(num_jobs=Sprint.num_jobs + 1)
        .execution_options(synchronize_session="fetch")
    )


def decrement_num_jobs(session: Session, sprint_id: int) -> None:
    session.execute(
        update(Sprint)
        .where(Sprint.id == sprint_id, Sprint.num_jobs > 0)
        .values(num_jobs=Sprint.num_jobs - 1)
        .execution_options(synchronize_session="fetch")
    )
