"""
import_engine.report - Structured result of an import run.

Outcomes are appended in row order; a failed checkpoint rewrites the
uncommitted tail as failed.  The report is owned by the BatchImporter
while the run is in progress and handed to the caller at the end.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RunState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class OutcomeStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportOutcome:
    row: int                                # file row number, header = 1
    status: OutcomeStatus
    record_id: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"row": self.row, "status": self.status.value,
             "record_id": self.record_id}
        if self.error:
            d["error"] = self.error
            d["error_code"] = self.error_code
        return d


@dataclass
class ImportReport:
    state: RunState = RunState.PENDING
    outcomes: list[ImportOutcome] = field(default_factory=list)
    error: Optional[str] = None             # run-fatal reason, if any
    error_code: Optional[str] = None
    committed_rows: int = 0                 # outcomes durably checkpointed

    def add(self, outcome: ImportOutcome):
        self.outcomes.append(outcome)

    def abort(self, reason: str, code: Optional[str] = None):
        self.state = RunState.ABORTED
        self.error = reason
        self.error_code = code

    def fail_uncommitted(self, reason: str, code: str):
        """Re-record every outcome after committed_rows as failed; its writes were rolled back."""
        for i in range(self.committed_rows, len(self.outcomes)):
            old = self.outcomes[i]
            if old.status is not OutcomeStatus.FAILED:
                self.outcomes[i] = ImportOutcome(old.row, OutcomeStatus.FAILED,
                                                 error=reason, error_code=code)

    @property
    def total_rows(self) -> int:
        return len(self.outcomes)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def failures(self) -> list[ImportOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.FAILED]

    def summary(self) -> dict:
        d = {"total": self.total_rows}
        for status in OutcomeStatus:
            d[status.value] = self.count(status)
        return d

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "summary": self.summary(),
            "committed_rows": self.committed_rows,
            "error": self.error,
            "error_code": self.error_code,
            "errors": [
                {"row": o.row, "reason": o.error, "code": o.error_code}
                for o in self.failures
            ],
        }
