"""
import_engine.row_processor - Map, resolve and dispatch one CSV row.

Single-responsibility: given a raw row, either return the ImportOutcome
for it or raise RowError.
"""

from __future__ import annotations

from typing import Sequence

from import_engine.field_map import ColumnMapper
from import_engine.report import ImportOutcome, OutcomeStatus
from import_engine.resolver import IdentifierResolver, TargetKind, require_identified
from import_engine.sink import RecordSink
from import_engine.spec import ActionPolicy, ImportSpec


class RowProcessor:

    def __init__(self, spec: ImportSpec, sink: RecordSink):
        self.spec = spec
        self.sink = sink
        self.mapper = ColumnMapper(
            spec.mapping,
            spec.multivalue_separator,
            resolve_property=sink.resolve_property,
            language=spec.global_language,
        )
        self.resolver = IdentifierResolver(
            sink.find_by_property,
            spec.identifier_column,
            spec.identifier_property,
            spec.action_unidentified,
        )

    def process(self, row: int, raw_row: Sequence[str], header: Sequence[str]) -> ImportOutcome:
        """
        Import one row.  Returns a created/updated/deleted/skipped outcome;
        raises RowError (or whatever the sink raises) on failure.
        """
        action = self.spec.action
        record = self.mapper.map(raw_row, header)
        target = require_identified(self.resolver.resolve(record, action, raw_row))

        if target.kind is TargetKind.NOT_FOUND:
            return ImportOutcome(row, OutcomeStatus.SKIPPED)

        if target.kind is TargetKind.NEW:
            record_id = self.sink.create(
                record,
                resource_type=self.spec.resource_type,
                is_public=self.spec.is_public,
                owner_id=self.spec.owner_id,
            )
            return ImportOutcome(row, OutcomeStatus.CREATED, record_id)

        if action is ActionPolicy.DELETE:
            self.sink.delete(target.record_id)
            return ImportOutcome(row, OutcomeStatus.DELETED, target.record_id)

        self.sink.update(target.record_id, record, action.value)
        return ImportOutcome(row, OutcomeStatus.UPDATED, target.record_id)
