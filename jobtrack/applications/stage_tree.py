"""Stage tree rendering with preview support.

build_rows() is a pure projection: stored stages plus an optional pending
change in, display rows out. Nothing is written, so "show the tree, then
ask for confirmation" needs no dry-run transaction.

    AddPreview     → new row appended as stage N+1, highlighted green
    UpdatePreview  → target row shows the merged values, highlighted green
    DeletePreview  → target row still shown, highlighted red; later rows keep
                     their current numbers (the renumbering is not previewed)
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Union

from rich.console import Console
from rich.text import Text
from rich.tree import Tree
from sqlalchemy.orm import Session

from ..common.errors import NotFoundError
from .models import DATE_FORMAT, STAGE_STATUS_COLORS, InterviewStage, StageStatus
from .stage_service import StageChanges, StageDraft, list_stages

ADD_COLOR = "bold green"
UPDATE_COLOR = "bold green"
DELETE_COLOR = "bold red"


@dataclass(frozen=True)
class AddPreview:
    draft: StageDraft


@dataclass(frozen=True)
class UpdatePreview:
    stage_id: int
    changes: StageChanges


@dataclass(frozen=True)
class DeletePreview:
    stage_id: int


Preview = Union[AddPreview, UpdatePreview, DeletePreview, None]


@dataclass(frozen=True)
class RenderRow:
    """One displayable stage.

    stage_id is None only for the pending row of an AddPreview; its
    position is the number the stage will get once committed.
    """
    stage_id: Optional[int]
    position: int
    name: Optional[str]
    status: str
    status_color: str
    scheduled_date: str
    notes: str
    highlighted: bool = False
    highlight_color: Optional[str] = None

    @property
    def is_new(self) -> bool:
        return self.stage_id is None

    @property
    def label(self) -> str:
        if self.name:
            return f"Stage {self.position}: {self.name}"
        return f"Stage {self.position}"


def _status_color(status: str) -> str:
    try:
        return STAGE_STATUS_COLORS[StageStatus(status)]
    except ValueError:
        return ""


def _row(
    stage_id: Optional[int],
    position: int,
    name: Optional[str],
    status,
    scheduled_date: str,
    notes: Optional[str],
    highlight_color: Optional[str] = None,
) -> RenderRow:
    status = str(status)
    return RenderRow(
        stage_id=stage_id,
        position=position,
        name=name or None,
        status=status,
        status_color=_status_color(status),
        scheduled_date=scheduled_date,
        notes=notes or "",
        highlighted=highlight_color is not None,
        highlight_color=highlight_color,
    )


def _stage_row(stage: InterviewStage, highlight_color: Optional[str] = None) -> RenderRow:
    return _row(
        stage.id,
        stage.stage_number,
        stage.name,
        stage.status,
        stage.scheduled_date,
        stage.notes,
        highlight_color,
    )


def build_rows(
    stages: Sequence[InterviewStage],
    preview: Preview = None,
) -> list[RenderRow]:
    """Project ordered stages (and an optional pending change) into rows."""
    ordered = sorted(stages, key=lambda s: s.stage_number)

    if preview is None:
        return [_stage_row(s) for s in ordered]

    if isinstance(preview, AddPreview):
        rows = [_stage_row(s) for s in ordered]
        draft = preview.draft
        next_number = (ordered[-1].stage_number if ordered else 0) + 1
        rows.append(_row(
            None,
            next_number,
            draft.name,
            draft.status,
            draft.scheduled_date,
            draft.notes,
            ADD_COLOR,
        ))
        return rows

    if isinstance(preview, (UpdatePreview, DeletePreview)):
        if not any(s.id == preview.stage_id for s in ordered):
            raise NotFoundError("Stage", preview.stage_id)

    if isinstance(preview, DeletePreview):
        return [
            _stage_row(s, DELETE_COLOR if s.id == preview.stage_id else None)
            for s in ordered
        ]

    if isinstance(preview, UpdatePreview):
        changes = preview.changes.validated().as_dict()
        rows = []
        for s in ordered:
            if s.id != preview.stage_id:
                rows.append(_stage_row(s))
                continue
            rows.append(_row(
                s.id,
                s.stage_number,
                changes.get("name", s.name),
                changes.get("status", s.status),
                changes.get("scheduled_date", s.scheduled_date),
                changes.get("notes", s.notes),
                UPDATE_COLOR,
            ))
        return rows

    raise TypeError(f"Unknown preview directive: {preview!r}")


def render_tree(session: Session, job_id: int, preview: Preview = None) -> list[RenderRow]:
    """Rows for a stored job, with the pending change applied for display."""
    return build_rows(list_stages(session, job_id), preview)


# ---------------------------------------------------------------------------
# rich presentation
# ---------------------------------------------------------------------------

def display_date(value: str, date_format: str = DATE_FORMAT) -> str:
    """Reformat a stored YYYY-MM-DD date; anything unparseable is shown as is."""
    try:
        return datetime.strptime(value, DATE_FORMAT).strftime(date_format)
    except (TypeError, ValueError):
        return value


def build_tree(
    root_label: Union[str, Text],
    rows: Sequence[RenderRow],
    date_format: str = DATE_FORMAT,
) -> Tree:
    tree = Tree(root_label, guide_style="dim")
    for row in rows:
        hl = row.highlight_color
        branch = tree.add(Text(row.label, style=hl or "bold white"))
        status_line = Text("[")
        status_line.append(row.status, style=hl or row.status_color)
        status_line.append("] ")
        shown_date = display_date(row.scheduled_date, date_format)
        status_line.append(shown_date, style=hl.replace("bold ", "") if hl else "")
        branch.add(status_line)
        if row.notes:
            branch.add(Text(row.notes, style=hl.replace("bold ", "") if hl else ""))
    return tree


def job_label(company_name: str, title: Optional[str]) -> Text:
    label = Text(company_name, style="bold white")
    label.append(" - ")
    label.append(title or "N/A", style="bold bright_cyan")
    return label


def print_stage_tree(
    console: Console,
    company_name: str,
    title: Optional[str],
    rows: Sequence[RenderRow],
    date_format: str = DATE_FORMAT,
) -> None:
    console.print()
    console.print(build_tree(job_label(company_name, title), rows, date_format))
    console.print()
