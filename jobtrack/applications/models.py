"""SQLAlchemy 2.0 models for the job application tracker.

Five tables:
- sprints:           time-boxed groups of applications
- titles:            deduplicated job titles
- statuses:          application statuses (seeded on init)
- jobs:              one row per tracked application
- interview_stages:  numbered interview pipeline per job, 1..N without gaps
"""
import enum
from typing import Optional

from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)

from ..common.errors import ValidationError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


class Base(DeclarativeBase):
    """Shared declarative base for all tracker models."""
    pass


# --- Enums ---


class StageStatus(str, enum.Enum):
    """Outcome of a single interview stage."""
    SCHEDULED = "SCHEDULED"
    PASSED = "PASSED"
    REJECTED = "REJECTED"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value) -> "StageStatus":
        """Accept a StageStatus or a case-insensitive name, reject anything else."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        allowed = ", ".join(s.value for s in cls)
        raise ValidationError("status", f"{value!r} is not one of {allowed}")

    @property
    def color(self) -> str:
        return STAGE_STATUS_COLORS[self]

    @property
    def date_prompt(self) -> str:
        return f"Select the {self.value.lower()} date"


STAGE_STATUS_COLORS = {
    StageStatus.SCHEDULED: "bold bright_yellow",
    StageStatus.PASSED: "bold bright_green",
    StageStatus.REJECTED: "bold bright_red",
}

DEFAULT_JOB_STATUSES = [
    "GHOSTED",
    "HIRED",
    "IN PROGRESS",
    "NOT HIRING ANYMORE",
    "OFFER RECEIVED",
    "PENDING",
    "REJECTED",
]

JOB_STATUS_COLORS = {
    "GHOSTED": "bold white",
    "HIRED": "bold green",
    "IN PROGRESS": "bold yellow",
    "NOT HIRING ANYMORE": "rgb(201,201,201)",
    "OFFER RECEIVED": "bold magenta",
    "PENDING": "bold blue",
    "REJECTED": "bold red",
}


# --- Models ---


class Sprint(Base):
    """A job search sprint. Every job belongs to exactly one."""
    __tablename__ = "sprints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    start_date: Mapped[str] = mapped_column(Text, nullable=False)
    end_date: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    num_jobs: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    jobs: Mapped[list["Job"]] = relationship(back_populates="sprint")

    def __str__(self) -> str:
        return f"{self.name} (Start Date: {self.start_date}, End Date: {self.end_date or 'N/A'})"

    def __repr__(self) -> str:
        return f"<Sprint(id={self.id}, name='{self.name}', num_jobs={self.num_jobs})>"


class Title(Base):
    __tablename__ = "titles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Title(id={self.id}, name='{self.name}')>"


class JobStatus(Base):
    __tablename__ = "statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<JobStatus(id={self.id}, name='{self.name}')>"


class Job(Base):
    """A tracked job application, parent of its interview stages."""
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created: Mapped[str] = mapped_column(Text, nullable=False)
    company_name: Mapped[str] = mapped_column(Text, nullable=False)
    title_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("titles.id"), nullable=False
    )
    status_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("statuses.id"), nullable=False
    )
    link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sprint_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("sprints.id"), nullable=False
    )

    title: Mapped["Title"] = relationship()
    status: Mapped["JobStatus"] = relationship()
    sprint: Mapped["Sprint"] = relationship(back_populates="jobs")
    stages: Mapped[list["InterviewStage"]] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InterviewStage.stage_number",
    )

    __table_args__ = (
        Index("ix_jobs_sprint_id", "sprint_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Job(id={self.id}, "
            f"company='{self.company_name}', "
            f"sprint_id={self.sprint_id})>"
        )


class InterviewStage(Base):
    """One step in a job's interview pipeline.

    stage_number is the 1-based position within the job and is rewritten
    when an earlier sibling is deleted; id never changes.
    """
    __tablename__ = "interview_stages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    stage_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=StageStatus.SCHEDULED.value,
        server_default=StageStatus.SCHEDULED.value,
    )
    scheduled_date: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created: Mapped[str] = mapped_column(Text, nullable=False)

    job: Mapped["Job"] = relationship(back_populates="stages")

    __table_args__ = (
        UniqueConstraint("job_id", "stage_number", name="uq_interview_stages_job_stage"),
        Index("ix_interview_stages_job_id", "job_id"),
        {"sqlite_autoincrement": True},
    )

    @property
    def label(self) -> str:
        if self.name:
            return f"Stage {self.stage_number}: {self.name}"
        return f"Stage {self.stage_number}"

    def __str__(self) -> str:
        return f"{self.label} [{self.status}] {self.scheduled_date}"

    def __repr__(self) -> str:
        return (
            f"<InterviewStage(id={self.id}, job_id={self.job_id}, "
            f"number={self.stage_number}, status='{self.status}')>"
        )
