#!/usr/bin/env python3
"""
cli - Command-line importer.

    python cli.py /path/to/file.csv [--spec run.yaml] [--email=EMAIL]
                  [--owner-id=ID] [--db URL] [--delimiter ,] [--dry-run]

Resolves the acting user, stages a disposable copy of the file (the
import job deletes its input), checks the header row, then runs the
import synchronously and prints the summary.

Env fallback: RECIMPORT_ADMIN_EMAIL can be used instead of --email.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

import config
from db import get_session
from import_engine import ImportSpec, RunState, load_spec
from import_engine.csv_parser import default_delimiter, detect_media_type, read_header
from import_engine.errors import ConfigurationError, MalformedHeader
from main import init_storage
from services.import_jobs import create_run, run_job
from services.staging import staged_copy
from services.user_service import resolve_owner

# Run used when no --spec is given: title / creator / description by
# position, a media URL in the fourth column, updating by title.
DEFAULT_SPEC = {
    "resource_type": "items",
    "column-property": {
        0: {"dcterms:title": 1},
        1: {"dcterms:creator": 2},
        2: {"dcterms:description": 4},
    },
    "column-media_source": {3: "url"},
    "column-multivalue": [],
    "multivalue_separator": ",",
    "global_language": "",
    "action": "update",
    "identifier_column": 0,
    "identifier_property": "dcterms:title",
    "action_unidentified": "create",
    "o:is_public": 1,
    "enclosure": '"',
    "escape": "\\",
}

MAX_ERRORS_SHOWN = 10


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cli.py", description="Import records from a CSV/TSV file")
    parser.add_argument("file", help="Path to the CSV/TSV file")
    parser.add_argument("--spec", help="YAML run file (mapping, action, identifier …)")
    parser.add_argument("--email", help="Act as the user with this email")
    parser.add_argument("--owner-id", type=int, help="Act as the user with this id")
    parser.add_argument("--db", default=None, help="Database URL (default: config.DB_URL)")
    parser.add_argument("--delimiter", help="Override the column delimiter")
    parser.add_argument("--dry-run", action="store_true",
                        help="Run the import without committing anything")
    return parser


def load_run_spec(spec_path: str | None, media_type: str, delimiter: str | None) -> ImportSpec:
    if spec_path:
        spec = load_spec(spec_path)
    else:
        data = dict(DEFAULT_SPEC)
        data["rows_by_batch"] = config.DEFAULT_BATCH_SIZE
        data["delimiter"] = default_delimiter(media_type)
        spec = ImportSpec.from_dict(data)
    if delimiter:
        spec = spec.with_overrides(delimiter="\t" if delimiter == "\\t" else delimiter)
    return spec


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    source = Path(args.file)
    if not source.is_file() or not os.access(source, os.R_OK):
        print(f"ERROR: cannot read '{args.file}'", file=sys.stderr)
        return 1
    source = source.resolve()
    media_type = detect_media_type(source)

    try:
        spec = load_run_spec(args.spec, media_type, args.delimiter)
    except ConfigurationError as exc:
        print(f"ERROR: invalid run spec: {exc}", file=sys.stderr)
        return 1

    init_storage(args.db)

    session = get_session()
    try:
        try:
            user = resolve_owner(session, args.owner_id, args.email or config.ADMIN_EMAIL)
        except LookupError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1
        print(f"Acting as user: {user.email} (id {user.id})")

        with staged_copy(source) as tmp:
            print(f"Created temporary copy for import: {tmp}")
            try:
                header = read_header(tmp, spec.delimiter, spec.enclosure, spec.escape)
            except MalformedHeader as exc:
                print(f"ERROR: {exc}", file=sys.stderr)
                return 1
            print(f"Columns: {', '.join(header)}")

            run = create_run(
                session,
                filename=source.name,
                filesize=tmp.stat().st_size,
                media_type=media_type,
                comment=f"CLI import {datetime.now():%Y-%m-%d %H:%M:%S}",
                owner_id=user.id,
            )
            run_id = run.id
            print(f"Dispatched import run id: {run_id}")
            report = run_job(run_id, tmp, spec, dry_run=args.dry_run)
    finally:
        session.close()

    summary = report.summary()
    print(f"Done [{report.state.value}]: {summary['created']} created, "
          f"{summary['updated']} updated, {summary['deleted']} deleted, "
          f"{summary['skipped']} skipped, {summary['failed']} failed "
          f"/ {summary['total']} rows")
    if args.dry_run:
        print("DRY RUN - nothing was committed")
    if report.error:
        print(f"ERROR: {report.error}", file=sys.stderr)
    failures = report.failures
    if failures:
        print(f"First errors (max {MAX_ERRORS_SHOWN}):")
        for outcome in failures[:MAX_ERRORS_SHOWN]:
            print(f"  Row {outcome.row}: {outcome.error}")

    return 0 if report.state is RunState.COMPLETED else 1


if __name__ == "__main__":
    sys.exit(main())
