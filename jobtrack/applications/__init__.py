"""Job Application Tracker.

SQLite-backed tracking of job applications, grouped into sprints, with a
numbered interview pipeline per application.

Storage:   models, database (engine / session / init)
Stages:    stage_service (numbering owner), stage_tree (preview rendering)
Jobs:      job_service (CRUD, filtered listing, insights)
Sprints:   sprint_service
Lookups:   lookup_service (titles, statuses)
"""

from .models import (
    Base,
    InterviewStage,
    Job,
    JobStatus,
    Sprint,
    StageStatus,
    Title,
)
from .database import (
    get_engine,
    get_session,
    init_db,
)
from .stage_service import (
    StageChanges,
    StageDraft,
    list_stages,
    get_stage,
    add_stage,
    update_stage,
    delete_stage,
    renumber_stages,
    next_stage_number,
)
from .stage_tree import (
    AddPreview,
    UpdatePreview,
    DeletePreview,
    RenderRow,
    build_rows,
    render_tree,
)
from .job_service import (
    JobQuery,
    JobRow,
    add_job,
    update_job,
    delete_job,
    get_job,
    list_jobs,
    count_jobs_per_status,
    count_jobs_per_sprint,
)
from .sprint_service import (
    add_sprint,
    get_or_create_sprint,
    list_sprints,
    start_new_sprint,
)

__all__ = [
    # Models
    "Base",
    "InterviewStage",
    "Job",
    "JobStatus",
    "Sprint",
    "StageStatus",
    "Title",
    # Database
    "get_engine",
    "get_session",
    "init_db",
    # Stages
    "StageChanges",
    "StageDraft",
    "list_stages",
    "get_stage",
    "add_stage",
    "update_stage",
    "delete_stage",
    "renumber_stages",
    "next_stage_number",
    # Stage tree
    "AddPreview",
    "UpdatePreview",
    "DeletePreview",
    "RenderRow",
    "build_rows",
    "render_tree",
    # Jobs
    "JobQuery",
    "JobRow",
    "add_job",
    "update_job",
    "delete_job",
    "get_job",
    "list_jobs",
    "count_jobs_per_status",
    "count_jobs_per_sprint",
    # Sprints
    "add_sprint",
    "get_or_create_sprint",
    "list_sprints",
    "start_new_sprint",
]
