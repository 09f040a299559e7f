"""Tests for job application CRUD, filtered listing and insights."""
import pytest
from sqlalchemy import select

from jobtrack.common.errors import NotFoundError, ValidationError
from jobtrack.applications.job_service import (
    JobQuery,
    _percent,
    add_job,
    count_jobs_per_sprint,
    count_jobs_per_status,
    delete_job,
    get_job,
    list_jobs,
    update_job,
)
from jobtrack.applications.models import InterviewStage
from jobtrack.applications.sprint_service import add_sprint
from jobtrack.applications.stage_service import add_stage


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

class TestAddJob:
    def test_add_job(self, session, sprint):
        job = add_job(session, " Acme ", "Backend Engineer", "pending", sprint,
                      link="https://acme.example/jobs/1", notes="referral")
        assert job.id is not None
        assert job.company_name == "Acme"
        assert job.title.name == "Backend Engineer"
        assert job.status.name == "PENDING"
        assert job.sprint_id == sprint.id
        assert job.notes == "referral"
        assert sprint.num_jobs == 1

    def test_titles_are_shared(self, session, make_job):
        a = make_job("Acme")
        b = make_job("Globex")
        assert a.title_id == b.title_id

    def test_empty_company_rejected(self, session, sprint):
        with pytest.raises(ValidationError):
            add_job(session, "  ", "Engineer", "PENDING", sprint)

    def test_unknown_status(self, session, sprint):
        with pytest.raises(NotFoundError):
            add_job(session, "Acme", "Engineer", "DREAMING", sprint)


class TestUpdateJob:
    def test_partial_update(self, session, job):
        update_job(session, job.id, status="IN PROGRESS", notes="call back Monday")
        assert job.status.name == "IN PROGRESS"
        assert job.notes == "call back Monday"
        assert job.company_name == "Acme Corp"

    def test_move_between_sprints(self, session, job, sprint):
        other = add_sprint(session, "2026-11-01", start_date="2026-11-01")
        update_job(session, job.id, sprint=other)
        assert job.sprint_id == other.id
        assert sprint.num_jobs == 0
        assert other.num_jobs == 1

    def test_clear_link(self, session, make_job):
        job = make_job(link="https://x.example")
        update_job(session, job.id, link="")
        assert job.link is None

    def test_unknown_job(self, session):
        with pytest.raises(NotFoundError):
            update_job(session, 123, notes="x")


class TestDeleteJob:
    def test_delete_cascades_stages(self, session, staged_job, sprint):
        job_id = staged_job.id
        delete_job(session, job_id)
        session.commit()

        with pytest.raises(NotFoundError):
            get_job(session, job_id)
        remaining = session.scalars(
            select(InterviewStage).where(InterviewStage.job_id == job_id)
        ).all()
        assert remaining == []
        assert sprint.num_jobs == 0

    def test_unknown_job(self, session):
        with pytest.raises(NotFoundError):
            delete_job(session, 77)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog(session, sprint, make_job):
    """Four jobs across two sprints with varying stage counts."""
    later = add_sprint(session, "2026-11-01", start_date="2026-11-01")
    acme = make_job("Acme Corp", "Backend Engineer", "PENDING", link="https://acme.example")
    globex = make_job("Globex", "Data Engineer", "REJECTED", notes="too senior")
    initech = make_job("Initech", "Backend Engineer", "IN PROGRESS")
    umbrella = make_job("Umbrella", "SRE", "PENDING", target_sprint=later)

    add_stage(session, acme.id, "PASSED", "2026-10-02")
    for day in ("2026-10-03", "2026-10-04"):
        add_stage(session, initech.id, "SCHEDULED", day)
    session.commit()
    return {"acme": acme, "globex": globex, "initech": initech,
            "umbrella": umbrella, "later": later}


class TestListJobs:
    def test_current_sprint_only(self, session, sprint, catalog):
        rows = list_jobs(session, JobQuery(), current_sprint=sprint)
        assert [r.company_name for r in rows] == ["Acme Corp", "Globex", "Initech"]

    def test_sprint_filter_overrides_current(self, session, sprint, catalog):
        rows = list_jobs(session, JobQuery(sprint="11-01"), current_sprint=sprint)
        assert [r.company_name for r in rows] == ["Umbrella"]

    def test_no_sprint_lists_everything(self, session, catalog):
        assert len(list_jobs(session)) == 4

    @pytest.mark.parametrize("query, expected", [
        (JobQuery(company="acme"), ["Acme Corp"]),
        (JobQuery(title="backend"), ["Acme Corp", "Initech"]),
        (JobQuery(status="progress"), ["Initech"]),
        (JobQuery(notes="senior"), ["Globex"]),
        (JobQuery(link="acme.example"), ["Acme Corp"]),
        (JobQuery(title="backend", status="pending"), ["Acme Corp"]),
    ])
    def test_text_filters(self, session, sprint, catalog, query, expected):
        rows = list_jobs(session, query, current_sprint=sprint)
        assert [r.company_name for r in rows] == expected

    def test_stages_zero_means_any_stage(self, session, sprint, catalog):
        rows = list_jobs(session, JobQuery(stages=0), current_sprint=sprint)
        assert [r.company_name for r in rows] == ["Acme Corp", "Initech"]

    def test_stages_exact_count(self, session, sprint, catalog):
        rows = list_jobs(session, JobQuery(stages=2), current_sprint=sprint)
        assert [r.company_name for r in rows] == ["Initech"]

    def test_row_fields(self, session, sprint, catalog):
        rows = {r.company_name: r for r in list_jobs(session, current_sprint=sprint)}
        assert rows["Initech"].stages == 2
        assert rows["Globex"].stages is None
        assert rows["Globex"].status == "REJECTED"
        assert rows["Acme Corp"].title == "Backend Engineer"


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

class TestInsights:
    def test_percent_helper(self):
        assert _percent(1, 3) == "33.33%"
        assert _percent(0, 0) == "0.00%"

    def test_per_status(self, session, sprint, catalog):
        counts = {c.label: c for c in count_jobs_per_status(session, sprint)}
        assert set(counts) == {"IN PROGRESS", "PENDING", "REJECTED"}
        assert counts["PENDING"].count == 1
        assert counts["PENDING"].sprint_percentage == "33.33%"
        assert counts["PENDING"].overall_percentage == "25.00%"

    def test_per_sprint(self, session, sprint, catalog):
        counts = {c.label: c for c in count_jobs_per_sprint(session, sprint)}
        assert counts["2026-10-01"].count == 3
        assert counts["2026-10-01"].sprint_percentage == "100.00%"
        assert counts["2026-11-01"].overall_percentage == "25.00%"

    def test_empty_sprint(self, session, sprint):
        assert count_jobs_per_status(session, sprint) == []
