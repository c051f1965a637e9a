"""
import_engine.spec - Run configuration (ImportSpec + ColumnMapping).

An ImportSpec is built once per run, validated on construction and
never mutated afterwards.  from_dict() accepts the same argument shapes
the admin job takes ("column-property", "column-media_source", …) as
well as underscore spellings, so a YAML run file can use either.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional

import yaml

from import_engine.errors import ConfigurationError


class ActionPolicy(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    APPEND = "append"
    REPLACE = "replace"
    DELETE = "delete"


class UnidentifiedPolicy(str, Enum):
    SKIP = "skip"
    CREATE = "create"


RESOURCE_TYPES = frozenset({"items", "item_sets"})
MEDIA_INGESTERS = frozenset({"url"})


@dataclass(frozen=True)
class ColumnRule:
    """What one column feeds: property terms, a media ingester, or both."""

    properties: tuple[str, ...] = ()
    media_source: Optional[str] = None
    multivalue: bool = False


@dataclass(frozen=True)
class ColumnMapping:
    """Ordered column index → ColumnRule.  Indices not present are ignored."""

    rules: Mapping[int, ColumnRule] = field(default_factory=dict)

    def __post_init__(self):
        ordered = dict(sorted(self.rules.items()))
        for idx in ordered:
            if not isinstance(idx, int) or idx < 0:
                raise ConfigurationError(f"Invalid column index: {idx!r}")
        object.__setattr__(self, "rules", MappingProxyType(ordered))

    def __len__(self) -> int:
        return len(self.rules)

    def items(self):
        return self.rules.items()

    def get(self, idx: int) -> Optional[ColumnRule]:
        return self.rules.get(idx)

    def terms(self) -> list[str]:
        """Distinct property terms in column order."""
        seen: list[str] = []
        for rule in self.rules.values():
            for term in rule.properties:
                if term not in seen:
                    seen.append(term)
        return seen

    @classmethod
    def from_config(
        cls,
        column_property: Optional[Mapping] = None,
        column_media_source: Optional[Mapping] = None,
        column_multivalue: Any = None,
    ) -> "ColumnMapping":
        props: dict[int, tuple[str, ...]] = {}
        for idx, terms in (column_property or {}).items():
            props[_index(idx)] = _terms(terms)

        media: dict[int, str] = {}
        for idx, ingester in (column_media_source or {}).items():
            ingester = str(ingester).strip()
            if ingester not in MEDIA_INGESTERS:
                raise ConfigurationError(f"Unsupported media ingester: {ingester!r}")
            media[_index(idx)] = ingester

        multi: set[int] = set()
        if isinstance(column_multivalue, Mapping):
            multi = {_index(k) for k, v in column_multivalue.items() if v}
        elif column_multivalue:
            multi = {_index(k) for k in column_multivalue}

        rules = {}
        for idx in sorted(set(props) | set(media) | multi):
            rules[idx] = ColumnRule(
                properties=props.get(idx, ()),
                media_source=media.get(idx),
                multivalue=idx in multi,
            )
        return cls(rules)


@dataclass(frozen=True)
class ImportSpec:
    delimiter: str = ","
    enclosure: str = '"'
    escape: str = "\\"
    resource_type: str = "items"
    action: ActionPolicy = ActionPolicy.CREATE
    identifier_column: Optional[int] = None
    identifier_property: Optional[str] = None
    action_unidentified: UnidentifiedPolicy = UnidentifiedPolicy.SKIP
    multivalue_separator: str = ","
    rows_by_batch: int = 20
    owner_id: Optional[int] = None
    is_public: bool = True
    global_language: str = ""
    mapping: ColumnMapping = field(default_factory=ColumnMapping)

    def __post_init__(self):
        try:
            object.__setattr__(self, "action", ActionPolicy(self.action))
            object.__setattr__(
                self, "action_unidentified",
                UnidentifiedPolicy(self.action_unidentified),
            )
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

        for name in ("delimiter", "enclosure"):
            if len(getattr(self, name)) != 1:
                raise ConfigurationError(f"{name} must be a single character")
        if len(self.escape) > 1:
            raise ConfigurationError("escape must be a single character or empty")
        if self.delimiter == self.enclosure:
            raise ConfigurationError("delimiter and enclosure must differ")
        if self.resource_type not in RESOURCE_TYPES:
            raise ConfigurationError(f"Unknown resource type: {self.resource_type!r}")
        if not self.multivalue_separator:
            raise ConfigurationError("multivalue_separator must not be empty")
        if self.rows_by_batch < 1:
            raise ConfigurationError("rows_by_batch must be at least 1")
        if not isinstance(self.mapping, ColumnMapping):
            raise ConfigurationError("mapping must be a ColumnMapping")

        if self.action is not ActionPolicy.CREATE:
            if self.identifier_column is None or self.identifier_column < 0:
                raise ConfigurationError(
                    f"action {self.action.value!r} requires identifier_column")
            if not self.identifier_property:
                raise ConfigurationError(
                    f"action {self.action.value!r} requires identifier_property")

    @property
    def needs_identifier(self) -> bool:
        return self.action is not ActionPolicy.CREATE

    # ── Construction from external configuration ───────────────────────

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImportSpec":
        """Build a spec from job arguments / a parsed YAML document."""
        data = {str(k).replace("-", "_"): v for k, v in data.items()}

        mapping = ColumnMapping.from_config(
            data.pop("column_property", None),
            data.pop("column_media_source", None),
            data.pop("column_multivalue", None),
        )

        owner = data.pop("o:owner", None) or data.pop("owner", None)
        if isinstance(owner, Mapping):
            owner = owner.get("o:id")
        if owner not in (None, "") and "owner_id" not in data:
            data["owner_id"] = owner
        if "o:is_public" in data:
            data["is_public"] = data.pop("o:is_public")

        kwargs: dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            if name == "mapping" or name not in data:
                continue
            kwargs[name] = data[name]

        try:
            for name in ("identifier_column", "owner_id", "rows_by_batch"):
                if kwargs.get(name) in ("", None):
                    kwargs.pop(name, None)
                else:
                    kwargs[name] = int(kwargs[name])
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid integer setting: {exc}") from exc
        if "is_public" in kwargs:
            kwargs["is_public"] = _as_bool(kwargs["is_public"])
        if kwargs.get("identifier_property") == "":
            kwargs["identifier_property"] = None
        for name in ("delimiter", "enclosure", "escape",
                     "multivalue_separator", "global_language"):
            if name in kwargs and kwargs[name] is None:
                kwargs[name] = ""

        return cls(mapping=mapping, **kwargs)

    def with_overrides(self, **changes) -> "ImportSpec":
        """Return a new spec; the original is left untouched."""
        return replace(self, **changes)


def load_spec(path: str | Path) -> ImportSpec:
    """Read a YAML run file into an ImportSpec."""
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Spec file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Spec file {path} must contain a mapping")
    return ImportSpec.from_dict(data)


# ── Private helpers ────────────────────────────────────────────────────

def _index(value) -> int:
    try:
        idx = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid column index: {value!r}") from None
    if idx < 0:
        raise ConfigurationError(f"Invalid column index: {value!r}")
    return idx


def _terms(value) -> tuple[str, ...]:
    # {term: id} as sent by the admin form, [term, …] or a bare term
    if isinstance(value, Mapping):
        items = list(value.keys())
    elif isinstance(value, str):
        items = [value]
    else:
        items = list(value or [])
    terms = tuple(str(t).strip() for t in items if str(t).strip())
    if not terms:
        raise ConfigurationError("Property mapping with no terms")
    return terms


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
