"""Tests for stage tree rows and previews."""
import io

import pytest
from rich.console import Console
from rich.tree import Tree

from jobtrack.common.errors import NotFoundError
from jobtrack.applications.models import InterviewStage
from jobtrack.applications.stage_service import (
    StageChanges,
    StageDraft,
    add_stage,
    count_stages,
    list_stages,
)
from jobtrack.applications.stage_tree import (
    ADD_COLOR,
    DELETE_COLOR,
    UPDATE_COLOR,
    AddPreview,
    DeletePreview,
    UpdatePreview,
    build_rows,
    build_tree,
    display_date,
    print_stage_tree,
    render_tree,
)


def _make_stage(stage_id, number, name=None, status="SCHEDULED",
                scheduled_date="2026-10-01", notes=None, job_id=1):
    """Transient stage, never added to a session."""
    return InterviewStage(
        id=stage_id,
        job_id=job_id,
        stage_number=number,
        name=name,
        status=status,
        scheduled_date=scheduled_date,
        notes=notes,
        created="2026-10-01 09:00:00",
    )


@pytest.fixture
def stages():
    return [
        _make_stage(10, 1, "Phone Screen", "PASSED", "2026-10-10"),
        _make_stage(11, 2, "Technical", "SCHEDULED", "2026-10-11", notes="system design"),
        _make_stage(12, 3, "Onsite", "SCHEDULED", "2026-10-12"),
    ]


# ---------------------------------------------------------------------------
# TestBuildRows
# ---------------------------------------------------------------------------

class TestBuildRows:
    def test_no_preview_mirrors_stages(self, stages):
        rows = build_rows(stages)
        assert [r.position for r in rows] == [1, 2, 3]
        assert [r.stage_id for r in rows] == [10, 11, 12]
        assert [r.name for r in rows] == ["Phone Screen", "Technical", "Onsite"]
        assert not any(r.highlighted for r in rows)

    def test_status_colors(self, stages):
        rows = build_rows(stages)
        assert rows[0].status == "PASSED"
        assert rows[0].status_color == "bold bright_green"
        assert rows[1].status_color == "bold bright_yellow"

    def test_missing_notes_render_empty(self, stages):
        rows = build_rows(stages)
        assert rows[0].notes == ""
        assert rows[1].notes == "system design"

    def test_sorts_unordered_input(self, stages):
        rows = build_rows(list(reversed(stages)))
        assert [r.position for r in rows] == [1, 2, 3]

    def test_empty_job(self):
        assert build_rows([]) == []

    def test_label_with_and_without_name(self):
        rows = build_rows([_make_stage(1, 1, "Screen"), _make_stage(2, 2)])
        assert rows[0].label == "Stage 1: Screen"
        assert rows[1].label == "Stage 2"

    def test_unknown_preview_type(self, stages):
        with pytest.raises(TypeError):
            build_rows(stages, preview="delete")


class TestAddPreview:
    def test_appends_new_highlighted_row(self, stages):
        draft = StageDraft.create("SCHEDULED", "2026-10-20", name="Final")
        rows = build_rows(stages, AddPreview(draft))

        assert len(rows) == 4
        new = rows[-1]
        assert new.position == 4
        assert new.is_new
        assert new.stage_id is None
        assert new.name == "Final"
        assert new.scheduled_date == "2026-10-20"
        assert new.highlighted
        assert new.highlight_color == ADD_COLOR
        assert not any(r.highlighted for r in rows[:3])

    def test_first_stage_preview(self):
        draft = StageDraft.create("PASSED", "2026-10-20")
        rows = build_rows([], AddPreview(draft))
        assert [(r.position, r.is_new) for r in rows] == [(1, True)]
        assert rows[0].status == "PASSED"

    def test_inputs_not_mutated(self, stages):
        draft = StageDraft.create("SCHEDULED", "2026-10-20")
        build_rows(stages, AddPreview(draft))
        assert len(stages) == 3


class TestUpdatePreview:
    def test_shows_merged_values(self, stages):
        changes = StageChanges(status="rejected", notes="no fit")
        rows = build_rows(stages, UpdatePreview(11, changes))

        target = rows[1]
        assert target.position == 2
        assert target.status == "REJECTED"
        assert target.notes == "no fit"
        assert target.name == "Technical"
        assert target.scheduled_date == "2026-10-11"
        assert target.highlight_color == UPDATE_COLOR
        assert [r.highlighted for r in rows] == [False, True, False]

    def test_stored_stage_untouched(self, stages):
        build_rows(stages, UpdatePreview(11, StageChanges(name="Panel")))
        assert stages[1].name == "Technical"

    def test_unknown_stage(self, stages):
        with pytest.raises(NotFoundError):
            build_rows(stages, UpdatePreview(99, StageChanges(name="x")))


class TestDeletePreview:
    def test_marks_target_red_keeps_numbers(self, stages):
        rows = build_rows(stages, DeletePreview(11))

        assert len(rows) == 3
        assert [r.position for r in rows] == [1, 2, 3]
        assert [r.highlighted for r in rows] == [False, True, False]
        assert rows[1].highlight_color == DELETE_COLOR
        assert rows[1].name == "Technical"

    def test_unknown_stage(self, stages):
        with pytest.raises(NotFoundError):
            build_rows(stages, DeletePreview(99))


# ---------------------------------------------------------------------------
# TestRenderTree (stored stages)
# ---------------------------------------------------------------------------

class TestRenderTree:
    def test_reads_stored_stages(self, session, staged_job):
        rows = render_tree(session, staged_job.id)
        assert [r.label for r in rows] == [
            "Stage 1: Phone Screen",
            "Stage 2: Technical",
            "Stage 3: Onsite",
        ]

    def test_delete_preview_writes_nothing(self, session, staged_job):
        technical = list_stages(session, staged_job.id)[1]
        rows = render_tree(session, staged_job.id, DeletePreview(technical.id))
        assert rows[1].highlighted
        assert count_stages(session, staged_job.id) == 3

    def test_add_preview_matches_committed_number(self, session, staged_job):
        draft = StageDraft.create("SCHEDULED", "2026-10-30", name="Final")
        preview_row = render_tree(session, staged_job.id, AddPreview(draft))[-1]
        stage = add_stage(session, staged_job.id, draft.status, draft.scheduled_date, draft.name)
        assert stage.stage_number == preview_row.position

    def test_unknown_job(self, session, engine):
        with pytest.raises(NotFoundError):
            render_tree(session, 4242)


# ---------------------------------------------------------------------------
# TestRichOutput
# ---------------------------------------------------------------------------

class TestRichOutput:
    def test_build_tree(self, stages):
        tree = build_tree("Acme - Engineer", build_rows(stages))
        assert isinstance(tree, Tree)
        assert len(tree.children) == 3
        # status line, plus notes only where present
        assert len(tree.children[0].children) == 1
        assert len(tree.children[1].children) == 2

    def test_print_stage_tree(self, stages):
        out = io.StringIO()
        console = Console(file=out, width=100, color_system=None)
        print_stage_tree(console, "Acme Corp", "Software Engineer", build_rows(stages))
        text = out.getvalue()
        assert "Acme Corp - Software Engineer" in text
        assert "Stage 2: Technical" in text
        assert "[SCHEDULED] 2026-10-11" in text
        assert "system design" in text

    def test_print_stage_tree_date_format(self, stages):
        out = io.StringIO()
        console = Console(file=out, width=100, color_system=None)
        print_stage_tree(console, "Acme Corp", None, build_rows(stages), "%d.%m.%Y")
        assert "[SCHEDULED] 11.10.2026" in out.getvalue()

    def test_bracketed_names_are_literal(self):
        out = io.StringIO()
        console = Console(file=out, width=100, color_system=None)
        rows = build_rows([_make_stage(1, 1, "Panel [/round 2]", notes="[bold]")])
        print_stage_tree(console, "Acme [/Corp]", "Engineer", rows)
        text = out.getvalue()
        assert "Acme [/Corp] - Engineer" in text
        assert "Stage 1: Panel [/round 2]" in text
        assert "[bold]" in text


@pytest.mark.parametrize("value, date_format, expected", [
    ("2026-10-11", "%d.%m.%Y", "11.10.2026"),
    ("2026-10-11", "%Y-%m-%d", "2026-10-11"),
    ("someday", "%d.%m.%Y", "someday"),
])
def test_display_date(value, date_format, expected):
    assert display_date(value, date_format) == expected
