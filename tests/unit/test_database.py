"""Tests for engine setup and session handling."""
import pytest
from sqlalchemy import inspect, select, text

from jobtrack.common.errors import StorageUnavailableError
from jobtrack.applications.database import get_db_path, get_engine, get_session, init_db
from jobtrack.applications.models import Sprint
from jobtrack.applications.sprint_service import add_sprint


def test_db_path_from_env(tmp_path):
    assert get_db_path() == tmp_path / "jobtrack.db"


def test_init_creates_tables(engine):
    tables = set(inspect(engine).get_table_names())
    assert {"sprints", "titles", "statuses", "jobs", "interview_stages"} <= tables


def test_init_is_rerunnable(engine):
    init_db(engine)
    with get_session(engine) as session:
        assert session.scalar(text("SELECT COUNT(*) FROM statuses")) == 7


def test_connection_pragmas(engine):
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        assert conn.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"
        assert conn.exec_driver_sql("PRAGMA busy_timeout").scalar() == 5000


def test_session_commits(engine):
    with get_session(engine) as session:
        add_sprint(session, "committed")
    with get_session(engine) as session:
        assert session.scalars(select(Sprint.name)).all() == ["committed"]


def test_session_rolls_back_on_error(engine):
    with pytest.raises(RuntimeError):
        with get_session(engine) as session:
            add_sprint(session, "discarded")
            raise RuntimeError("boom")
    with get_session(engine) as session:
        assert session.scalars(select(Sprint)).all() == []


def test_objects_usable_after_commit(engine):
    with get_session(engine) as session:
        sprint = add_sprint(session, "detached")
    assert sprint.name == "detached"


def test_sqlite_error_becomes_storage_unavailable(engine):
    with pytest.raises(StorageUnavailableError):
        with get_session(engine) as session:
            session.execute(text("SELECT * FROM no_such_table"))


def test_unwritable_location(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    with pytest.raises(StorageUnavailableError) as exc:
        get_engine(blocker / "jobtrack.db")
    assert exc.value.exit_code == 2
