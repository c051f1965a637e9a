"""
import_engine.sink - Record Sink boundary.

The import engine never touches storage; everything goes through a
RecordSink.  services.record_sink provides the SQLAlchemy-backed one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from import_engine.field_map import MappedRecord


@dataclass(frozen=True)
class PropertyHandle:
    id: int
    term: str


class RecordSink(ABC):

    @abstractmethod
    def find_by_property(self, term: str, value: str) -> list[int]:
        """Ids of records having *value* for property *term*."""

    @abstractmethod
    def create(
        self,
        record: MappedRecord,
        *,
        resource_type: str = "items",
        is_public: bool = True,
        owner_id: Optional[int] = None,
    ) -> int:
        """Create a record; return its id.  Raises SinkRejected."""

    @abstractmethod
    def update(self, record_id: int, record: MappedRecord, mode: str) -> None:
        """Apply *record* to an existing one (mode: update/append/replace)."""

    @abstractmethod
    def delete(self, record_id: int) -> None:
        """Remove a record.  Raises SinkRejected."""

    @abstractmethod
    def resolve_property(self, term: str) -> PropertyHandle:
        """Return the handle for *term* or raise UnknownProperty."""

    @abstractmethod
    def checkpoint(self) -> None:
        """Commit pending work.  Raises CheckpointFailed."""
