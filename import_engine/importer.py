"""
import_engine.importer - Top-level orchestrator.

Coordinates csv_parser → row_processor → sink checkpoints and produces
a structured ImportReport.  Rows are processed strictly in file order;
a later row must see records created by an earlier one.
"""

from __future__ import annotations

import logging
import threading
from contextlib import closing
from pathlib import Path
from typing import Optional

from import_engine.csv_parser import TabularReader
from import_engine.errors import ImportEngineError, MalformedHeader, UnknownProperty
from import_engine.report import ImportOutcome, ImportReport, OutcomeStatus, RunState
from import_engine.row_processor import RowProcessor
from import_engine.sink import RecordSink
from import_engine.spec import ImportSpec

logger = logging.getLogger(__name__)


class BatchImporter:
    """
    One import run: pending → running → completed | aborted.

    Row errors become failed outcomes and never stop the run.  Only an
    unreadable file, a bad header, a property that cannot be resolved up
    front or a failed checkpoint abort it.  A failed checkpoint turns the
    outcomes of its batch into failures.  cancel_event is checked between
    rows.
    """

    def __init__(
        self,
        spec: ImportSpec,
        sink: RecordSink,
        *,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.spec = spec
        self.sink = sink
        self.cancel_event = cancel_event or threading.Event()
        self.report = ImportReport()

    @property
    def state(self) -> RunState:
        return self.report.state

    @property
    def outcomes(self) -> tuple[ImportOutcome, ...]:
        """Snapshot of the outcomes recorded so far."""
        return tuple(self.report.outcomes)

    def cancel(self):
        self.cancel_event.set()

    def run(self, path: str | Path) -> ImportReport:
        if self.report.state is not RunState.PENDING:
            raise RuntimeError("An import run can only be started once")

        spec = self.spec
        report = self.report
        report.state = RunState.RUNNING
        logger.info(f"Import of {Path(path).name} started "
                    f"(action={spec.action.value}, batch={spec.rows_by_batch})")

        reader = TabularReader(path, spec.delimiter, spec.enclosure, spec.escape)
        processor = RowProcessor(spec, self.sink)
        try:
            header = reader.open()
        except MalformedHeader as exc:
            return self._abort(str(exc), exc.code)
        except OSError as exc:
            return self._abort(f"Cannot read {path}: {exc}", "io_error")

        try:
            processor.mapper.validate()
            if spec.needs_identifier:
                self.sink.resolve_property(spec.identifier_property)
        except UnknownProperty as exc:
            return self._abort(str(exc), exc.code)
        except Exception as exc:
            logger.exception("Property lookup failed")
            return self._abort(f"Property lookup failed: {exc}", "schema_error")

        pending = 0
        try:
            with closing(reader.numbered_rows()) as rows:
                for row_idx, raw_row in rows:                # file line, header = 1
                    if self.cancel_event.is_set():
                        break
                    report.add(self._process_row(processor, row_idx, raw_row, header))
                    pending += 1
                    if pending >= spec.rows_by_batch:
                        if not self._checkpoint():
                            return report
                        pending = 0
        except OSError as exc:
            return self._abort(f"Read error in {path}: {exc}", "io_error")

        if pending and not self._checkpoint():
            return report

        if self.cancel_event.is_set():
            logger.warning(f"Import cancelled after {report.total_rows} rows")
            return self._abort("cancelled", "cancelled")

        report.state = RunState.COMPLETED
        logger.info(f"Import completed: {report.summary()}")
        return report

    # ── Private helpers ────────────────────────────────────────────────

    def _process_row(self, processor: RowProcessor, row_idx: int, raw_row, header) -> ImportOutcome:
        try:
            return processor.process(row_idx, raw_row, header)
        except ImportEngineError as exc:
            logger.warning(f"Row {row_idx}: {exc}")
            return ImportOutcome(row_idx, OutcomeStatus.FAILED,
                                 error=str(exc), error_code=exc.code)
        except Exception as exc:
            logger.exception(f"Row {row_idx}: unexpected error")
            return ImportOutcome(row_idx, OutcomeStatus.FAILED,
                                 error=f"Unexpected: {exc}", error_code="unexpected")

    def _checkpoint(self) -> bool:
        try:
            self.sink.checkpoint()
        except Exception as exc:
            code = getattr(exc, "code", "checkpoint_failed")
            reason = f"Checkpoint failed: {exc}"
            logger.error(f"Checkpoint failed after row count {self.report.total_rows}: {exc}")
            self.report.fail_uncommitted(reason, code)
            self._abort(reason, code)
            return False
        self.report.committed_rows = self.report.total_rows
        logger.debug(f"Checkpoint ok ({self.report.committed_rows} rows committed)")
        return True

    def _abort(self, reason: str, code: str) -> ImportReport:
        logger.error(f"Import aborted: {reason}")
        self.report.abort(reason, code)
        return self.report


def run_import(
    path: str | Path,
    spec: ImportSpec,
    sink: RecordSink,
    *,
    cancel_event: Optional[threading.Event] = None,
) -> ImportReport:
    """
    Import a delimited file through *sink*.

    Parameters
    ----------
    path : file to read (opened read-only, never modified)
    spec : run configuration
    sink : persistence target
    cancel_event : optional flag checked between rows

    Returns
    -------
    ImportReport with per-row outcomes and the terminal run state
    """
    return BatchImporter(spec, sink, cancel_event=cancel_event).run(path)
