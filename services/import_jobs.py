"""
services.import_jobs - Import runs as jobs.

A job owns an ImportRun row, its own DB session and its input file:
the input is deleted when the job ends, so callers pass a staged copy.
run_job() executes inline; start_job() runs the same thing on a daemon
thread and returns immediately with the run id.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.engine import get_session
from db.models import ImportRun
from import_engine import BatchImporter, ImportReport, ImportSpec
from services.record_sink import SqlRecordSink
from services.staging import discard

logger = logging.getLogger(__name__)


@dataclass
class _Job:
    cancel_event: threading.Event = field(default_factory=threading.Event)
    importer: Optional[BatchImporter] = None
    thread: Optional[threading.Thread] = None


_jobs: dict[int, _Job] = {}
_lock = threading.Lock()


def create_run(
    session: Session,
    *,
    filename: str,
    filesize: int = 0,
    media_type: str = "text/csv",
    comment: str = "",
    owner_id: Optional[int] = None,
) -> ImportRun:
    """Insert a pending ImportRun and commit it."""
    run = ImportRun(
        filename=filename, filesize=filesize, media_type=media_type,
        comment=comment, owner_id=owner_id, status="pending",
    )
    session.add(run)
    session.commit()
    return run


def run_job(
    run_id: int,
    path: str | Path,
    spec: ImportSpec,
    *,
    dry_run: bool = False,
    delete_source: bool = True,
) -> ImportReport:
    """Execute an import run synchronously and persist its summary."""
    job = _register(run_id)
    session = get_session()
    try:
        run = session.get(ImportRun, run_id)
        if run is None:
            raise LookupError(f"Import run {run_id} not found")
        run.status = "running"
        run.started_at = datetime.now(timezone.utc)
        owner_id = run.owner_id
        session.commit()

        sink = SqlRecordSink(session, default_owner_id=owner_id, dry_run=dry_run)
        job.importer = BatchImporter(spec, sink, cancel_event=job.cancel_event)
        try:
            report = job.importer.run(path)
        except Exception as exc:
            logger.exception(f"Import run {run_id} failed")
            session.rollback()
            report = job.importer.report
            report.abort(f"Unexpected: {exc}", "unexpected")
        if dry_run:
            session.rollback()

        _finish(session, run_id, report)
        return report
    finally:
        session.close()
        _unregister(run_id)
        if delete_source:
            discard(path)


def start_job(
    run_id: int,
    path: str | Path,
    spec: ImportSpec,
    *,
    dry_run: bool = False,
) -> int:
    """Run the import on a background thread; returns *run_id*."""
    job = _register(run_id)

    def _target():
        try:
            run_job(run_id, path, spec, dry_run=dry_run)
        except Exception:
            logger.exception(f"Import run {run_id} crashed")

    job.thread = threading.Thread(target=_target, name=f"import-{run_id}", daemon=True)
    job.thread.start()
    return run_id


def cancel_job(run_id: int) -> bool:
    """Ask a running job to stop after its in-flight row."""
    with _lock:
        job = _jobs.get(run_id)
    if job is None:
        return False
    job.cancel_event.set()
    return True


def wait_job(run_id: int, timeout: Optional[float] = None) -> bool:
    """Block until a background job ends.  True if it is no longer running."""
    with _lock:
        job = _jobs.get(run_id)
    if job is None or job.thread is None:
        return True
    job.thread.join(timeout)
    return not job.thread.is_alive()


def get_progress(session: Session, run_id: int) -> Optional[dict]:
    """Stored run data, overlaid with live counts while the job runs."""
    run = session.get(ImportRun, run_id)
    if run is None:
        return None
    data = run.to_dict()
    with _lock:
        job = _jobs.get(run_id)
    if job is not None and job.importer is not None:
        live = job.importer.report
        data["status"] = live.state.value
        data["report"] = live.to_dict()
    return data


# ── Private helpers ────────────────────────────────────────────────────

def _register(run_id: int) -> _Job:
    with _lock:
        job = _jobs.get(run_id)
        if job is None:
            job = _jobs[run_id] = _Job()
        return job


def _unregister(run_id: int):
    with _lock:
        _jobs.pop(run_id, None)


def _finish(session: Session, run_id: int, report: ImportReport):
    try:
        run = session.get(ImportRun, run_id)
        run.status = report.state.value
        run.error = report.error or ""
        run.report_json = json.dumps(report.to_dict(), ensure_ascii=False)
        run.ended_at = datetime.now(timezone.utc)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Could not store result of import run {run_id}: {exc}")
    logger.info(f"Import run {run_id} {report.state.value}: {report.summary()}")
