import json

from db import get_session, ImportRun, Record
from import_engine import BatchImporter, ColumnMapping, ImportSpec, RunState
from services.import_jobs import (
    cancel_job, create_run, get_progress, run_job, start_job, wait_job,
)
from services.staging import stage_file

SPEC = ImportSpec(
    mapping=ColumnMapping.from_config({0: ["dcterms:title"], 1: ["dcterms:creator"]}),
)


def _staged(write_csv, rows):
    return stage_file(write_csv(rows))


def test_run_job_stores_summary_and_consumes_input(db_session, write_csv):
    staged = _staged(write_csv, [["title", "creator"], ["A", "x"], ["B", "y"]])
    run = create_run(db_session, filename="data.csv")

    report = run_job(run.id, staged, SPEC)

    assert report.state is RunState.COMPLETED
    assert not staged.exists()
    db_session.expire_all()
    stored = db_session.get(ImportRun, run.id)
    assert stored.status == "completed"
    assert stored.started_at is not None and stored.ended_at is not None
    assert json.loads(stored.report_json)["summary"]["created"] == 2
    assert db_session.query(Record).count() == 2


def test_run_job_owner_comes_from_run(db_session, write_csv):
    from services.user_service import ensure_user
    user = ensure_user(db_session, "owner@example.org")
    db_session.commit()
    staged = _staged(write_csv, [["title"], ["A"]])
    run = create_run(db_session, filename="data.csv", owner_id=user.id)

    run_job(run.id, staged, SPEC)

    db_session.expire_all()
    assert db_session.query(Record).one().owner_id == user.id


def test_dry_run_commits_nothing(db_session, write_csv):
    staged = _staged(write_csv, [["title"], ["A"], ["B"]])
    run = create_run(db_session, filename="data.csv")

    report = run_job(run.id, staged, SPEC.with_overrides(rows_by_batch=1), dry_run=True)

    assert report.summary()["created"] == 2
    db_session.expire_all()
    assert db_session.query(Record).count() == 0
    assert db_session.get(ImportRun, run.id).status == "completed"


def test_aborted_run_keeps_error(db_session, tmp_path):
    empty = tmp_path / "empty.csv"
    empty.write_text("", encoding="utf-8")
    staged = stage_file(empty)
    run = create_run(db_session, filename="empty.csv")

    report = run_job(run.id, staged, SPEC)

    assert report.state is RunState.ABORTED
    db_session.expire_all()
    progress = get_progress(db_session, run.id)
    assert progress["status"] == "aborted"
    assert progress["error"]
    assert progress["report"]["error_code"] == "malformed_header"


def test_background_job(db_session, write_csv):
    staged = _staged(write_csv, [["title"], ["A"]])
    run = create_run(db_session, filename="data.csv")

    assert start_job(run.id, staged, SPEC) == run.id
    assert wait_job(run.id, timeout=30)

    session = get_session()
    try:
        progress = get_progress(session, run.id)
    finally:
        session.close()
    assert progress["status"] == "completed"
    assert progress["report"]["summary"]["total"] == 1
    assert not staged.exists()


def test_cancel_unknown_job():
    assert cancel_job(987654) is False
    assert wait_job(987654) is True


def test_progress_of_missing_run(db_session):
    assert get_progress(db_session, 424242) is None


def test_crashing_run_is_stored_as_aborted(db_session, write_csv, monkeypatch):
    def _crash(self, path):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(BatchImporter, "run", _crash)
    staged = _staged(write_csv, [["title"], ["A"]])
    run = create_run(db_session, filename="data.csv")

    report = run_job(run.id, staged, SPEC)

    assert report.state is RunState.ABORTED
    assert report.error_code == "unexpected"
    assert not staged.exists()
    db_session.expire_all()
    progress = get_progress(db_session, run.id)
    assert progress["status"] == "aborted"
    assert "disk on fire" in progress["error"]
