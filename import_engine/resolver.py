"""
import_engine.resolver - Decide whether a row targets an existing record.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from import_engine.errors import AmbiguousIdentifier
from import_engine.field_map import MappedRecord
from import_engine.spec import ActionPolicy, UnidentifiedPolicy


class TargetKind(str, Enum):
    NEW = "new"
    EXISTING = "existing"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolvedTarget:
    kind: TargetKind
    record_id: Optional[int] = None
    identifier: str = ""
    matches: tuple[int, ...] = ()


NEW_RECORD = ResolvedTarget(TargetKind.NEW)


class IdentifierResolver:
    """
    Look rows up by identifier through the sink's find_by_property.

    Zero matches fall back to *action_unidentified* (skip or create);
    under delete a miss is always NOT_FOUND.  Several matches are never
    narrowed down: the row is AMBIGUOUS.
    """

    def __init__(
        self,
        find_by_property: Callable[[str, str], list[int]],
        identifier_column: Optional[int],
        identifier_property: Optional[str],
        action_unidentified: UnidentifiedPolicy = UnidentifiedPolicy.SKIP,
    ):
        self._find = find_by_property
        self.identifier_column = identifier_column
        self.identifier_property = identifier_property
        self.action_unidentified = UnidentifiedPolicy(action_unidentified)

    def identifier_value(self, raw_row: Sequence[str]) -> str:
        idx = self.identifier_column
        if idx is None or idx >= len(raw_row):
            return ""
        return (raw_row[idx] or "").strip()

    def resolve(
        self,
        record: MappedRecord,
        action: ActionPolicy,
        raw_row: Sequence[str],
    ) -> ResolvedTarget:
        if action is ActionPolicy.CREATE:
            return NEW_RECORD

        value = self.identifier_value(raw_row)
        matches = self._find(self.identifier_property, value) if value else []

        if len(matches) == 1:
            return ResolvedTarget(TargetKind.EXISTING, matches[0], value, tuple(matches))
        if len(matches) > 1:
            return ResolvedTarget(TargetKind.AMBIGUOUS, None, value, tuple(matches))

        if action is not ActionPolicy.DELETE and \
                self.action_unidentified is UnidentifiedPolicy.CREATE:
            return ResolvedTarget(TargetKind.NEW, identifier=value)
        return ResolvedTarget(TargetKind.NOT_FOUND, identifier=value)


def require_identified(target: ResolvedTarget) -> ResolvedTarget:
    """Raise AmbiguousIdentifier for an AMBIGUOUS target, else pass it through."""
    if target.kind is TargetKind.AMBIGUOUS:
        raise AmbiguousIdentifier(target.identifier, target.matches)
    return target
