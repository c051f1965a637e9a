"""
services - Business-logic layer sitting between API/CLI and DB.
"""

from services.record_sink import SqlRecordSink                      # noqa: F401
from services.user_service import resolve_owner, ensure_user        # noqa: F401
from services.staging import staged_copy, stage_file, stage_bytes   # noqa: F401
from services.import_jobs import (                                  # noqa: F401
    create_run,
    run_job,
    start_job,
    cancel_job,
    wait_job,
    get_progress,
)
