"""
api.routes_import - /api/v1/imports endpoints.

Accepts a delimited file via multipart upload plus the run spec as a
JSON form field.  The upload is staged to a temp file that the job
consumes.
"""

import json
from pathlib import Path

from flask import request, jsonify
from werkzeug.utils import secure_filename

import config
from api import api_bp
from db import get_session, ImportRun
from import_engine import ImportSpec
from import_engine.csv_parser import detect_media_type, default_delimiter
from import_engine.errors import ConfigurationError
from services.import_jobs import (
    cancel_job, create_run, get_progress, run_job, start_job,
)
from services.staging import discard, stage_bytes


def _spec_from_request(media_type: str) -> ImportSpec:
    raw = request.form.get("spec", "").strip()
    try:
        data = json.loads(raw) if raw else {}
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"spec is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("spec must be a JSON object")
    data.setdefault("rows_by_batch", config.DEFAULT_BATCH_SIZE)
    data.setdefault("delimiter", default_delimiter(media_type))
    return ImportSpec.from_dict(data)


@api_bp.route("/imports", methods=["POST"])
def create_import():
    """
    POST /api/v1/imports?async=0|1&dry_run=0|1

    Multipart: field 'file' (CSV/TSV), optional field 'spec' (JSON),
    optional 'owner_id' and 'comment'.
    """
    upload = request.files.get("file")
    if not upload or not upload.filename:
        return jsonify({"error": "no file in upload"}), 400

    filename = secure_filename(upload.filename) or "upload.csv"
    media_type = detect_media_type(filename)
    spec = _spec_from_request(media_type)

    content = upload.read()
    if not content:
        return jsonify({"error": "empty file"}), 400

    run_async = request.args.get("async", "0") == "1"
    dry_run = request.args.get("dry_run", "0") == "1"
    owner_id = request.form.get("owner_id", type=int) or spec.owner_id

    staged = stage_bytes(content, suffix=Path(filename).suffix or ".csv")
    session = get_session()
    try:
        run = create_run(
            session,
            filename=filename,
            filesize=len(content),
            media_type=media_type,
            comment=request.form.get("comment", ""),
            owner_id=owner_id,
        )
        run_id = run.id
    except Exception:
        discard(staged)
        raise
    finally:
        session.close()

    if run_async:
        start_job(run_id, staged, spec, dry_run=dry_run)
        return jsonify({"id": run_id, "status": "pending"}), 202

    report = run_job(run_id, staged, spec, dry_run=dry_run)
    body = report.to_dict()
    body["id"] = run_id
    body["outcomes"] = [o.to_dict() for o in report.outcomes]
    return jsonify(body), 200


@api_bp.route("/imports")
def list_imports():
    """GET /api/v1/imports?limit=100&offset=0"""
    limit = min(int(request.args.get("limit", config.API_DEFAULT_LIMIT)),
                config.API_MAX_LIMIT)
    offset = int(request.args.get("offset", 0))
    session = get_session()
    try:
        q = session.query(ImportRun).order_by(ImportRun.id.desc())
        total = q.count()
        runs = q.offset(offset).limit(limit).all()
        return jsonify({
            "total": total,
            "offset": offset,
            "limit": limit,
            "imports": [r.to_dict() for r in runs],
        })
    finally:
        session.close()


@api_bp.route("/imports/<int:run_id>")
def get_import(run_id: int):
    """GET /api/v1/imports/{id} - stored result, or live progress while running."""
    session = get_session()
    try:
        data = get_progress(session, run_id)
        if data is None:
            return jsonify({"error": "not found"}), 404
        return jsonify(data)
    finally:
        session.close()


@api_bp.route("/imports/<int:run_id>", methods=["DELETE"])
def cancel_import(run_id: int):
    """DELETE /api/v1/imports/{id} - cancel a running import."""
    if not cancel_job(run_id):
        return jsonify({"error": "import is not running"}), 409
    return jsonify({"id": run_id, "cancelling": True}), 202
