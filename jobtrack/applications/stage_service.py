"""Interview stage repository.

The only code allowed to write interview_stages.stage_number. For every job
the stage numbers are exactly 1..N:

    add     → appended as max + 1 (1 for the first stage)
    update  → name / status / date / notes only, number never moves
    delete  → every later sibling shifts down by one

Each mutation runs inside a savepoint of the caller's transaction, and the
engine opens transactions with BEGIN IMMEDIATE, so a concurrent writer in
another process waits instead of observing or creating a gap or duplicate.

Usage:
    with get_session(engine) as session:
        stage = add_stage(session, job_id, "SCHEDULED", "2025-01-10",
                          name="Recruiter Call")
"""
import logging
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Any, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..common.errors import ConstraintViolationError, NotFoundError, ValidationError
from .models import (
    DATE_FORMAT,
    TIMESTAMP_FORMAT,
    InterviewStage,
    Job,
    StageStatus,
)

logger = logging.getLogger(__name__)

ACCEPTED_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d")
MUTABLE_FIELDS = ("name", "status", "scheduled_date", "notes")


class _Unset:
    """Marks a field that an update leaves alone."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------

def normalize_date(value: Union[str, date, None]) -> str:
    """Return value as YYYY-MM-DD. Accepts date objects, ISO or slashed strings."""
    if isinstance(value, datetime):
        return value.date().strftime(DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    if value is None or not str(value).strip():
        raise ValidationError("scheduled_date", "a date is required")
    text = str(value).strip()
    for fmt in ACCEPTED_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime(DATE_FORMAT)
        except ValueError:
            continue
    raise ValidationError("scheduled_date", f"{text!r} is not a YYYY-MM-DD date")


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class StageDraft:
    """Field values for a stage that does not exist yet."""
    status: StageStatus
    scheduled_date: str
    name: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def create(cls, status, scheduled_date, name=None, notes=None) -> "StageDraft":
        return cls(
            status=StageStatus.parse(status),
            scheduled_date=normalize_date(scheduled_date),
            name=_clean_text(name),
            notes=_clean_text(notes),
        )


@dataclass(frozen=True)
class StageChanges:
    """A partial update. Fields left as UNSET keep their stored value."""
    name: Any = UNSET
    status: Any = UNSET
    scheduled_date: Any = UNSET
    notes: Any = UNSET

    def validated(self) -> "StageChanges":
        """Normalize every set field; None clears name/notes only."""
        changes = {}
        if self.name is not UNSET:
            changes["name"] = _clean_text(self.name)
        if self.status is not UNSET:
            changes["status"] = StageStatus.parse(self.status)
        if self.scheduled_date is not UNSET:
            changes["scheduled_date"] = normalize_date(self.scheduled_date)
        if self.notes is not UNSET:
            changes["notes"] = _clean_text(self.notes)
        return replace(self, **changes)

    def as_dict(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.as_dict()


def stage_changes(**kwargs) -> StageChanges:
    """Build StageChanges, rejecting fields that are not mutable."""
    immutable = set(kwargs) - set(MUTABLE_FIELDS)
    if immutable:
        names = ", ".join(sorted(immutable))
        raise ValidationError(names, "cannot be changed through a stage update")
    return StageChanges(**kwargs).validated()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def _require_job(session: Session, job_id: int) -> Job:
    job = session.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


def get_stage(session: Session, stage_id: int) -> InterviewStage:
    stage = session.get(InterviewStage, stage_id)
    if stage is None:
        raise NotFoundError("Stage", stage_id)
    return stage


def list_stages(session: Session, job_id: int) -> list[InterviewStage]:
    """All stages of a job, ascending by stage_number. Empty list if none."""
    _require_job(session, job_id)
    return list(
        session.scalars(
            select(InterviewStage)
            .where(InterviewStage.job_id == job_id)
            .order_by(InterviewStage.stage_number.asc())
        ).all()
    )


def count_stages(session: Session, job_id: int) -> int:
    return session.scalar(
        select(func.count(InterviewStage.id)).where(InterviewStage.job_id == job_id)
    ) or 0


def next_stage_number(session: Session, job_id: int) -> int:
    """MAX(stage_number) + 1 for the job, or 1 if it has no stages."""
    current_max = session.scalar(
        select(func.max(InterviewStage.stage_number)).where(
            InterviewStage.job_id == job_id
        )
    )
    return (current_max or 0) + 1


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def add_stage(
    session: Session,
    job_id: int,
    status: Union[StageStatus, str] = StageStatus.SCHEDULED,
    scheduled_date: Union[str, date, None] = None,
    name: Optional[str] = None,
    notes: Optional[str] = None,
) -> InterviewStage:
    """Append a stage to the job's pipeline and return it with id and number."""
    draft = StageDraft.create(status, scheduled_date, name=name, notes=notes)
    return add_stage_from_draft(session, job_id, draft)


def add_stage_from_draft(
    session: Session, job_id: int, draft: StageDraft
) -> InterviewStage:
    try:
        with session.begin_nested():
            _require_job(session, job_id)
            number = next_stage_number(session, job_id)
            stage = InterviewStage(
                job_id=job_id,
                stage_number=number,
                name=draft.name,
                status=draft.status.value,
                scheduled_date=draft.scheduled_date,
                notes=draft.notes,
                created=datetime.now().strftime(TIMESTAMP_FORMAT),
            )
            session.add(stage)
            session.flush()
    except IntegrityError as e:
        logger.error(f"Stage numbering broken for job {job_id}: {e.orig}")
        raise ConstraintViolationError(
            f"Stage number collision while adding to job {job_id}"
        ) from e

    logger.info(f"Added stage {stage.stage_number} (id={stage.id}) to job {job_id}")
    return stage


def update_stage(
    session: Session,
    stage_id: int,
    changes: Optional[StageChanges] = None,
    **fields_to_change,
) -> InterviewStage:
    """Apply a partial update; stage_number and job_id are never touched.

    Pass either a StageChanges or keyword fields (name, status,
    scheduled_date, notes). An explicit None clears name or notes.
    """
    if changes is None:
        changes = stage_changes(**fields_to_change)
    else:
        if fields_to_change:
            raise ValidationError(
                "changes", "pass a StageChanges or keyword fields, not both"
            )
        changes = changes.validated()

    stage = get_stage(session, stage_id)
    values = changes.as_dict()
    if not values:
        return stage

    with session.begin_nested():
        for field_name, value in values.items():
            if isinstance(value, StageStatus):
                value = value.value
            setattr(stage, field_name, value)
        session.flush()

    logger.info(
        f"Updated stage {stage.stage_number} (id={stage.id}) of job {stage.job_id}: "
        f"{', '.join(sorted(values))}"
    )
    return stage


def delete_stage(session: Session, stage_id: int) -> InterviewStage:
    """Delete a stage and close the gap it leaves. Returns the deleted record."""
    stage = get_stage(session, stage_id)
    job_id = stage.job_id
    removed_number = stage.stage_number

    try:
        with session.begin_nested():
            session.delete(stage)
            session.flush()
            followers = session.scalars(
                select(InterviewStage)
                .where(
                    InterviewStage.job_id == job_id,
                    InterviewStage.stage_number > removed_number,
                )
                .order_by(InterviewStage.stage_number.asc())
            ).all()
            # One row per flush, lowest first: the UNIQUE pair is checked per row
            for follower in followers:
                follower.stage_number -= 1
                session.flush()
    except IntegrityError as e:
        logger.error(f"Renumbering failed for job {job_id}: {e.orig}")
        raise ConstraintViolationError(
            f"Stage number collision while renumbering job {job_id}"
        ) from e

    job = session.get(Job, job_id)
    if job is not None:
        session.expire(job, ["stages"])

    logger.info(
        f"Deleted stage {removed_number} (id={stage_id}) from job {job_id}, "
        f"renumbered {len(followers)}"
    )
    return stage


def renumber_stages(session: Session, job_id: int) -> int:
    """Rewrite stage numbers to 1..N keeping the current order.

    Returns how many rows changed. Not needed after delete_stage; this
    repairs a database edited by hand.
    """
    changed = 0
    with session.begin_nested():
        for index, stage in enumerate(list_stages(session, job_id), start=1):
            if stage.stage_number != index:
                stage.stage_number = index
                session.flush()
                changed += 1
    if changed:
        logger.warning(f"Renumbered {changed} stages of job {job_id}")
    return changed
