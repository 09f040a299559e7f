"""
Tracker Test Configuration

Shared fixtures for all tests.
"""
import os

import pytest
from sqlalchemy.orm import Session

from jobtrack.common import config as config_mod
from jobtrack.applications.database import get_engine, init_db
from jobtrack.applications.job_service import add_job
from jobtrack.applications.models import Job, Sprint
from jobtrack.applications.sprint_service import add_sprint
from jobtrack.applications.stage_service import add_stage


# =============================================================================
# FIXTURES: Config isolation
# =============================================================================

@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config and DB at tmp_path so no test touches the real home dir."""
    config_path = tmp_path / "config.yml"
    monkeypatch.setenv("JOBTRACK_CONFIG", str(config_path))
    monkeypatch.setenv("JOBTRACK_DB_PATH", str(tmp_path / "jobtrack.db"))
    for key in list(os.environ):
        if key.startswith("JOBTRACK__"):
            monkeypatch.delenv(key)
    config_mod.reload_config()
    yield config_path
    config_mod._config = None


# =============================================================================
# FIXTURES: Database
# =============================================================================

@pytest.fixture
def engine(tmp_path):
    """Fresh SQLite file per test, tables created and statuses seeded."""
    eng = get_engine(tmp_path / "test.db", echo=False)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as sess:
        yield sess


@pytest.fixture
def sprint(session) -> Sprint:
    return add_sprint(session, "2026-10-01", start_date="2026-10-01")


@pytest.fixture
def make_job(session, sprint):
    """Factory: make_job("Acme") → persisted Job in the default sprint."""

    def _make_job(company="Acme Corp", title="Software Engineer",
                  status="PENDING", target_sprint=None, **kwargs) -> Job:
        return add_job(
            session,
            company,
            title,
            status,
            target_sprint or sprint,
            **kwargs,
        )

    return _make_job


@pytest.fixture
def job(make_job) -> Job:
    return make_job()


@pytest.fixture
def staged_job(session, job):
    """A job with stages [1: Phone Screen, 2: Technical, 3: Onsite]."""
    for i, name in enumerate(["Phone Screen", "Technical", "Onsite"], start=1):
        add_stage(session, job.id, "SCHEDULED", f"2026-10-{i + 9:02d}", name=name)
    session.commit()
    return job

