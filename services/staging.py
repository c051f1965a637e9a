"""
services.staging - Disposable copies of import input files.

Import jobs delete the file they are given once they finish, treating
it as a temporary upload.  Callers hand them a staged copy, never the
caller's own file.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import config

logger = logging.getLogger(__name__)


def _ensure_staging_dir() -> Path:
    config.STAGING_DIR.mkdir(parents=True, exist_ok=True)
    return config.STAGING_DIR


def stage_file(source: str | Path) -> Path:
    """Copy *source* into the staging dir and return the copy's path."""
    source = Path(source)
    suffix = source.suffix or ".csv"
    fd, tmp = tempfile.mkstemp(prefix="import_", suffix=suffix, dir=_ensure_staging_dir())
    os.close(fd)
    try:
        shutil.copyfile(source, tmp)
    except OSError:
        Path(tmp).unlink(missing_ok=True)
        raise
    logger.debug(f"Staged {source} as {tmp}")
    return Path(tmp)


def stage_bytes(content: bytes, suffix: str = ".csv") -> Path:
    """Write uploaded content to a staged file."""
    fd, tmp = tempfile.mkstemp(prefix="upload_", suffix=suffix, dir=_ensure_staging_dir())
    with os.fdopen(fd, "wb") as fh:
        fh.write(content)
    return Path(tmp)


def discard(path: Optional[str | Path]):
    """Remove a staged file if it is still there."""
    if path:
        Path(path).unlink(missing_ok=True)


@contextmanager
def staged_copy(source: str | Path) -> Iterator[Path]:
    """
    Yield a temporary copy of *source*; the copy is removed on every exit
    path (it may already be gone if the job consumed it).
    """
    tmp = stage_file(source)
    try:
        yield tmp
    finally:
        discard(tmp)
