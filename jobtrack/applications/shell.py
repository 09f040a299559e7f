"""Interactive commands behind the CLI.

Each command reads what it needs in one short session, prompts, shows a
preview, and commits the confirmed change in a second session. No
transaction (and so no SQLite write lock) is held while waiting for input.
"""
import logging
import webbrowser
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar, Union

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from ..common.config import get_config
from ..common.errors import NoJobsAvailableError, ValidationError
from . import job_service, lookup_service, sprint_service, stage_service
from .database import get_session
from .job_service import JobQuery, JobRow
from .models import DATE_FORMAT, JOB_STATUS_COLORS, InterviewStage, Sprint, StageStatus
from .stage_service import StageChanges, StageDraft, normalize_date
from .stage_tree import (
    AddPreview,
    DeletePreview,
    UpdatePreview,
    build_rows,
    display_date,
    print_stage_tree,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUIT = "q"

Describe = Callable[[T], Union[str, Text]]


# ---------------------------------------------------------------------------
# Prompt helpers
# ---------------------------------------------------------------------------

def _print_choice(console: Console, number: int, description: Union[str, Text]) -> None:
    # Descriptions are user text, never markup
    console.print(Text.assemble("  ", (str(number), "bold"), ") ", description))


def select_one(
    console: Console,
    prompt: str,
    items: Sequence[T],
    describe: Describe = str,
) -> Optional[T]:
    """Numbered pick list. Returns None when the user quits."""
    if not items:
        return None
    for i, item in enumerate(items, start=1):
        _print_choice(console, i, describe(item))
    choices = [str(i) for i in range(1, len(items) + 1)] + [QUIT]
    answer = Prompt.ask(prompt, choices=choices, default=QUIT, show_choices=False)
    if answer == QUIT:
        return None
    return items[int(answer) - 1]


def select_many(
    console: Console,
    prompt: str,
    items: Sequence[T],
    describe: Describe = str,
) -> list[T]:
    """Comma-separated multi pick. Empty answer selects nothing."""
    for i, item in enumerate(items, start=1):
        _print_choice(console, i, describe(item))
    while True:
        answer = Prompt.ask(f"{prompt} (e.g. 1,3)", default="")
        if not answer.strip():
            return []
        try:
            picks = sorted({int(p) for p in answer.replace(" ", "").split(",") if p})
        except ValueError:
            console.print("[red]Enter numbers separated by commas.[/red]")
            continue
        if all(1 <= p <= len(items) for p in picks):
            return [items[p - 1] for p in picks]
        console.print(f"[red]Pick numbers between 1 and {len(items)}.[/red]")


def optional_text(prompt: str, default: Optional[str] = None) -> Optional[str]:
    answer = Prompt.ask(f"[dim]\\[OPTIONAL][/dim] {prompt}", default=default or "")
    return answer.strip() or None


def ask_stage_status(prompt: str, default: Optional[str] = None) -> StageStatus:
    answer = Prompt.ask(
        prompt,
        choices=[s.value for s in StageStatus],
        default=default or StageStatus.SCHEDULED.value,
    )
    return StageStatus.parse(answer)


def ask_date(console: Console, prompt: str, default: Optional[str] = None) -> str:
    default = default or date.today().strftime(DATE_FORMAT)
    while True:
        answer = Prompt.ask(f"{prompt} (YYYY-MM-DD)", default=default)
        try:
            return normalize_date(answer)
        except ValidationError as e:
            console.print(f"[red]{escape(str(e))}[/red]")


def confirm(prompt: str) -> bool:
    return Confirm.ask(prompt, default=True)


def print_cancelled(console: Console) -> None:
    console.print("[bold red]Cancelled.[/bold red]")


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------

def _status_style(status: Optional[str]) -> str:
    return JOB_STATUS_COLORS.get(status or "", "")


def _date_format() -> str:
    return get_config().display.date_format


def display_jobs(console: Console, jobs: Sequence[JobRow], sprint_name: str) -> None:
    table = Table(title=f"Job applications \\[{escape(sprint_name)}]", header_style="bold")
    for column in ("ID", "Created", "Company Name", "Title", "Status", "Num Stages", "Link", "Notes"):
        table.add_column(column)
    for job in jobs:
        style = _status_style(job.status)
        table.add_row(
            str(job.id),
            job.created,
            Text(job.company_name),
            Text(job.title or "N/A"),
            job.status or "N/A",
            str(job.stages) if job.stages else "",
            Text(job.link or "N/A"),
            Text(job.notes or "N/A"),
            style=style,
        )
    console.print(table)


def display_sprints(console: Console, sprints: Sequence[Sprint], current: Optional[str]) -> None:
    table = Table(title="Job sprints", header_style="bold")
    for column in ("Sprint Name", "Start Date", "End Date", "# of Jobs"):
        table.add_column(column)
    date_format = _date_format()
    for sprint in sprints:
        table.add_row(
            Text(sprint.name),
            display_date(sprint.start_date, date_format),
            display_date(sprint.end_date, date_format) if sprint.end_date else "N/A",
            str(sprint.num_jobs),
            style="bold green" if sprint.name == current else "",
        )
    console.print(table)


def _describe_job(job: JobRow) -> Text:
    return Text.assemble(
        f"ID: {job.id} | Company: ",
        (job.company_name, _status_style(job.status)),
        f" | Title: {job.title or ''} | Status: {job.status or ''}",
    )


def select_job(
    engine,
    console: Console,
    query: JobQuery,
    current_sprint: Sprint,
) -> Optional[JobRow]:
    """Resolve filter flags to one job chosen by the user."""
    with get_session(engine) as session:
        jobs = job_service.list_jobs(session, query, current_sprint)
    sprint_name = query.sprint or current_sprint.name
    if not jobs:
        raise NoJobsAvailableError(sprint_name)
    display_jobs(console, jobs, sprint_name)
    return select_one(console, "Select a job application", jobs, _describe_job)


def _no_stages(console: Console, job: JobRow) -> None:
    console.print(
        f"\n[bold yellow]No interview stages tracked for {escape(job.company_name)}.[/bold yellow]\n"
    )


# ---------------------------------------------------------------------------
# Job commands
# ---------------------------------------------------------------------------

def add_job(engine, console: Console, company: str, current_sprint: Sprint) -> None:
    with get_session(engine) as session:
        titles = [t.name for t in lookup_service.list_titles(session)]
        statuses = [s.name for s in lookup_service.list_statuses(session)]

    if titles:
        console.print(f"[dim]Known titles: {escape(', '.join(titles))}[/dim]")
    title = Prompt.ask("Enter the job title")
    status = select_one(console, "Select the application status", statuses)
    if status is None:
        return
    link = optional_text("Enter a link to the job posting or a local file")
    notes = optional_text("Enter any notes")

    preview = Table(header_style="bold")
    for column in ("Company Name", "Title", "Status", "Link", "Notes"):
        preview.add_column(column)
    preview.add_row(
        Text(company), Text(title), status, Text(link or ""), Text(notes or ""),
        style=_status_style(status),
    )
    console.print(preview)

    if not confirm("Confirm new job?"):
        print_cancelled(console)
        return

    with get_session(engine) as session:
        sprint = session.merge(current_sprint)
        job_service.add_job(session, company, title, status, sprint, link=link, notes=notes)
    console.print(f"\n[bold green]Tracked {escape(company)} in sprint {escape(current_sprint.name)}![/bold green]\n")


def list_jobs(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    with get_session(engine) as session:
        jobs = job_service.list_jobs(session, query, current_sprint)
    display_jobs(console, jobs, query.sprint or current_sprint.name)


UPDATABLE_JOB_FIELDS = ["Company name", "Title", "Status", "Link", "Notes", "Sprint"]


def update_job(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return
    fields = select_many(console, "Select the fields to update", UPDATABLE_JOB_FIELDS)
    if not fields:
        return

    with get_session(engine) as session:
        statuses = [s.name for s in lookup_service.list_statuses(session)]
        sprints = sprint_service.list_sprints(session)

    changes = {}
    for field in fields:
        if field == "Company name":
            changes["company_name"] = Prompt.ask("Enter a new company name", default=job.company_name)
        elif field == "Title":
            changes["title"] = Prompt.ask("Enter a new title", default=job.title or "")
        elif field == "Status":
            picked = select_one(console, "Select a new status", statuses)
            if picked is not None:
                changes["status"] = picked
        elif field == "Link":
            changes["link"] = optional_text("Enter a new link", default=job.link)
        elif field == "Notes":
            changes["notes"] = optional_text("Enter new notes", default=job.notes)
        elif field == "Sprint":
            picked = select_one(console, "Select a sprint", sprints, lambda s: str(s))
            if picked is not None:
                changes["sprint"] = picked

    if not changes or not confirm("Confirm updates?"):
        print_cancelled(console)
        return

    with get_session(engine) as session:
        if "sprint" in changes:
            changes["sprint"] = session.merge(changes["sprint"])
        job_service.update_job(session, job.id, **changes)
    console.print(f"\n[bold green]Updated {escape(job.company_name)}![/bold green]\n")


def delete_job(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return
    stage_note = f" and its {job.stages} interview stage(s)" if job.stages else ""
    if not confirm(f"Delete {escape(job.company_name)}{stage_note}?"):
        print_cancelled(console)
        return
    with get_session(engine) as session:
        job_service.delete_job(session, job.id)
    console.print(f"\n[bold green]Deleted {escape(job.company_name)}![/bold green]\n")


def open_job(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    """Open the job's link in the browser, or a local file it points at."""
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return
    if not job.link:
        console.print(f"[bold yellow]{escape(job.company_name)} has no link.[/bold yellow]")
        return
    target = job.link
    local = Path(target).expanduser()
    if local.exists():
        target = local.resolve().as_uri()
    logger.debug(f"Opening {target}")
    webbrowser.open(target)


def show_insights(engine, console: Console, current_sprint: Sprint) -> None:
    with get_session(engine) as session:
        sprint = session.merge(current_sprint)
        per_status = job_service.count_jobs_per_status(session, sprint)
        per_sprint = job_service.count_jobs_per_sprint(session, sprint)

    for title, label, rows in (
        (f"Jobs per status \\[{escape(current_sprint.name)}]", "Status", per_status),
        ("Jobs per sprint", "Sprint", per_sprint),
    ):
        table = Table(title=title, header_style="bold")
        for column in (label, "Count", "% of Sprint", "% Overall"):
            table.add_column(column)
        for row in rows:
            table.add_row(
                Text(row.label),
                str(row.count),
                row.sprint_percentage,
                row.overall_percentage,
                style=_status_style(row.label) if label == "Status" else "",
            )
        console.print(table)


# ---------------------------------------------------------------------------
# Stage commands
# ---------------------------------------------------------------------------

def _load_stages(engine, job_id: int) -> list[InterviewStage]:
    with get_session(engine) as session:
        return stage_service.list_stages(session, job_id)


def add_stage(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return

    name = optional_text("Enter a name for this stage (e.g. Phone Screen)")
    status = ask_stage_status("Select the status for this stage")
    scheduled_date = ask_date(console, status.date_prompt)
    notes = optional_text("Enter any notes for this stage")
    draft = StageDraft.create(status, scheduled_date, name=name, notes=notes)

    stages = _load_stages(engine, job.id)
    rows = build_rows(stages, AddPreview(draft))
    print_stage_tree(console, job.company_name, job.title, rows, _date_format())

    if not confirm("Confirm new stage?"):
        print_cancelled(console)
        return

    with get_session(engine) as session:
        stage = stage_service.add_stage_from_draft(session, job.id, draft)
        number = stage.stage_number
    console.print(f"\n[bold green]Added stage {number} for {escape(job.company_name)}![/bold green]\n")


def show_stage_tree(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    if query.stages is None:
        query.stages = 0
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return
    stages = _load_stages(engine, job.id)
    if not stages:
        _no_stages(console, job)
        return
    print_stage_tree(console, job.company_name, job.title, build_rows(stages), _date_format())


UPDATABLE_STAGE_FIELDS = ["Name", "Status", "Date", "Notes"]


def update_stage(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return
    stages = _load_stages(engine, job.id)
    if not stages:
        _no_stages(console, job)
        return

    stage = select_one(console, "Select the stage to update", stages)
    if stage is None:
        return
    fields = select_many(console, "Select the fields to update", UPDATABLE_STAGE_FIELDS)
    if not fields:
        return

    values = {}
    for field in fields:
        if field == "Name":
            values["name"] = optional_text("Enter a new name for this stage", default=stage.name)
        elif field == "Status":
            values["status"] = ask_stage_status("Select a new status", default=stage.status)
        elif field == "Date":
            effective = values.get("status") or StageStatus.parse(stage.status)
            values["scheduled_date"] = ask_date(
                console, effective.date_prompt, default=stage.scheduled_date
            )
        elif field == "Notes":
            values["notes"] = optional_text("Enter new notes for this stage", default=stage.notes)
    changes = StageChanges(**values).validated()

    rows = build_rows(stages, UpdatePreview(stage.id, changes))
    print_stage_tree(console, job.company_name, job.title, rows, _date_format())

    if not confirm("Confirm updates?"):
        print_cancelled(console)
        return

    with get_session(engine) as session:
        stage_service.update_stage(session, stage.id, changes)
    console.print(
        f"\n[bold green]Updated stage {stage.stage_number} for {escape(job.company_name)}![/bold green]\n"
    )


def delete_stage(engine, console: Console, query: JobQuery, current_sprint: Sprint) -> None:
    job = select_job(engine, console, query, current_sprint)
    if job is None:
        return
    stages = _load_stages(engine, job.id)
    if not stages:
        _no_stages(console, job)
        return

    stage = select_one(console, "Select the stage to delete", stages)
    if stage is None:
        return

    rows = build_rows(stages, DeletePreview(stage.id))
    print_stage_tree(console, job.company_name, job.title, rows, _date_format())

    if not confirm("Confirm deletion?"):
        print_cancelled(console)
        return

    with get_session(engine) as session:
        stage_service.delete_stage(session, stage.id)
    console.print(
        f"\n[bold green]Deleted stage {stage.stage_number} from {escape(job.company_name)}![/bold green]\n"
    )
