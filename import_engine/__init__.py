"""
import_engine - Batch record import pipeline.

Public API:
    run_import(path, spec, sink) → ImportReport
    BatchImporter(spec, sink).run(path)
    ImportSpec / ColumnMapping / load_spec
    RecordSink (abstract persistence boundary)
"""

from import_engine.importer import BatchImporter, run_import            # noqa: F401
from import_engine.report import (                                      # noqa: F401
    ImportOutcome,
    ImportReport,
    OutcomeStatus,
    RunState,
)
from import_engine.sink import PropertyHandle, RecordSink               # noqa: F401
from import_engine.spec import (                                        # noqa: F401
    ActionPolicy,
    ColumnMapping,
    ColumnRule,
    ImportSpec,
    UnidentifiedPolicy,
    load_spec,
)
