"""
import_engine.errors - Exception taxonomy for import runs.

Run-fatal:  ConfigurationError, MalformedHeader, UnknownProperty (eager),
            CheckpointFailed
Row-level:  RowError and subclasses → recorded as a failed outcome,
            never propagated out of the run.
"""

from __future__ import annotations


class ImportEngineError(Exception):
    """Base class for every error raised by the import engine."""

    code = "import_error"


class ConfigurationError(ImportEngineError):
    """Invalid ImportSpec / mapping configuration."""

    code = "configuration"


class MalformedHeader(ImportEngineError):
    """File is empty or its first row carries no fields."""

    code = "malformed_header"


class CheckpointFailed(ImportEngineError):
    """The record sink could not commit a batch."""

    code = "checkpoint_failed"


class RowError(ImportEngineError):
    """Raised when a single row cannot be imported."""

    code = "row_error"


class UnknownProperty(RowError):
    """A mapping references a property term the target schema does not know."""

    code = "unknown_property"

    def __init__(self, term: str):
        super().__init__(f"Unknown property term: {term}")
        self.term = term


class AmbiguousIdentifier(RowError):
    """More than one existing record carries the row's identifier value."""

    code = "ambiguous_identifier"

    def __init__(self, value: str, record_ids):
        ids = ", ".join(str(i) for i in record_ids)
        super().__init__(f"Identifier {value!r} matches several records ({ids})")
        self.value = value
        self.record_ids = tuple(record_ids)


class SinkRejected(RowError):
    """The record sink refused a create/update/delete."""

    code = "sink_rejected"
