"""
recimport - Centralised configuration.

All tunables live here.  Every other module imports from config
instead of reading os.environ directly.
"""

from __future__ import annotations
import os
import tempfile
from pathlib import Path


# ── Paths ──────────────────────────────────────────────────────────────
BASE_DIR     = Path(__file__).resolve().parent
VOCAB_PATH   = Path(os.environ.get("RECIMPORT_VOCABULARY", BASE_DIR / "vocabularies.json"))
STAGING_DIR  = Path(os.environ.get("RECIMPORT_STAGING_DIR",
                                   Path(tempfile.gettempdir()) / "recimport_staging"))

# ── Database ───────────────────────────────────────────────────────────
DB_URL = os.environ.get("RECIMPORT_DB", f"sqlite:///{BASE_DIR / 'recimport.sqlite'}")

# ── Server ─────────────────────────────────────────────────────────────
HOST   = os.environ.get("RECIMPORT_HOST", "0.0.0.0")
PORT   = int(os.environ.get("RECIMPORT_PORT", "5000"))
DEBUG  = os.environ.get("RECIMPORT_DEBUG", "0") == "1"
SECRET = os.environ.get("RECIMPORT_SECRET", "recimport-dev-key-change-in-prod")
MAX_UPLOAD_BYTES = int(os.environ.get("RECIMPORT_MAX_UPLOAD_MB", "64")) * 1024 * 1024

# ── Import defaults ────────────────────────────────────────────────────
ADMIN_EMAIL        = os.environ.get("RECIMPORT_ADMIN_EMAIL", "")
DEFAULT_BATCH_SIZE = int(os.environ.get("RECIMPORT_ROWS_BY_BATCH", "20"))

# ── Logging ────────────────────────────────────────────────────────────
LOG_LEVEL  = os.environ.get("RECIMPORT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# ── Pagination ─────────────────────────────────────────────────────────
API_MAX_LIMIT     = 1000
API_DEFAULT_LIMIT = 100
