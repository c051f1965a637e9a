"""
import_engine.field_map - Column-index → target-field mapping.

Turns a positional RawRow into a MappedRecord: property values keyed by
term plus media descriptors.  Columns absent from the mapping are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from import_engine.errors import UnknownProperty
from import_engine.spec import ColumnMapping


@dataclass(frozen=True)
class MediaDescriptor:
    ingester: str                   # e.g. "url"
    source: str


@dataclass
class MappedRecord:
    values: dict[str, list[str]] = field(default_factory=dict)
    media: list[MediaDescriptor] = field(default_factory=list)
    language: str = ""

    def add_value(self, term: str, value: str):
        self.values.setdefault(term, []).append(value)

    def is_empty(self) -> bool:
        return not self.values and not self.media


def split_cell(cell: Optional[str], separator: str, multivalue: bool) -> list[str]:
    """Split a cell (only when flagged multivalue), trim, drop empties."""
    if cell is None:
        return []
    parts = cell.split(separator) if multivalue else [cell]
    return [p.strip() for p in parts if p.strip()]


def map_row(
    raw_row: Sequence[str],
    header: Sequence[str],
    mapping: ColumnMapping,
    multivalue_separator: str,
    language: str = "",
) -> MappedRecord:
    """
    Apply *mapping* to one row.  Short rows read missing cells as empty;
    surplus cells beyond the mapped indices are never looked at.
    *header* is informational only.
    """
    record = MappedRecord(language=language)
    for idx, rule in mapping.items():
        cell = raw_row[idx] if idx < len(raw_row) else None
        values = split_cell(cell, multivalue_separator, rule.multivalue)
        if not values:
            continue
        for term in rule.properties:
            for val in values:
                record.add_value(term, val)
        if rule.media_source:
            for val in values:
                record.media.append(MediaDescriptor(rule.media_source, val))
    return record


class ColumnMapper:
    """
    map_row() plus property-term validation against the target schema.

    resolve_property is the sink's schema lookup; it must raise
    UnknownProperty for terms it does not know.
    """

    def __init__(
        self,
        mapping: ColumnMapping,
        multivalue_separator: str,
        resolve_property: Optional[Callable[[str], object]] = None,
        language: str = "",
    ):
        self.mapping = mapping
        self.separator = multivalue_separator
        self.language = language
        self._resolve = resolve_property
        self._known: dict[str, bool] = {}

    def validate(self):
        """Resolve every mapped term up front.  Raises UnknownProperty."""
        for term in self.mapping.terms():
            self._check(term)

    def map(self, raw_row: Sequence[str], header: Sequence[str]) -> MappedRecord:
        record = map_row(raw_row, header, self.mapping, self.separator, self.language)
        for term in record.values:
            self._check(term)
        return record

    def _check(self, term: str):
        if self._resolve is None:
            return
        known = self._known.get(term)
        if known is None:
            try:
                self._resolve(term)
                known = True
            except UnknownProperty:
                known = False
            self._known[term] = known
        if not known:
            raise UnknownProperty(term)
