"""
services.record_sink - SQLAlchemy-backed RecordSink.

Every write runs inside a SAVEPOINT: a rejected row rolls back only its
own changes and the rest of the batch stays pending until checkpoint().
Writes are flushed immediately so later rows in the same run can find
records created by earlier ones.

Session lifecycle stays with the caller (open before, close after).
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import Property, Record, RecordMedia, RecordValue
from import_engine.errors import CheckpointFailed, SinkRejected, UnknownProperty
from import_engine.field_map import MappedRecord, MediaDescriptor
from import_engine.sink import PropertyHandle, RecordSink

logger = logging.getLogger(__name__)

UPDATE_MODES = ("update", "append", "replace")


class SqlRecordSink(RecordSink):

    def __init__(
        self,
        session: Session,
        *,
        default_owner_id: Optional[int] = None,
        dry_run: bool = False,
    ):
        self.session = session
        self.default_owner_id = default_owner_id
        self.dry_run = dry_run
        self._properties: dict[str, Property] = {}

    # ── Schema ─────────────────────────────────────────────────────────

    def resolve_property(self, term: str) -> PropertyHandle:
        prop = self._property(term)
        return PropertyHandle(prop.id, prop.term)

    def _property(self, term: str) -> Property:
        prop = self._properties.get(term)
        if prop is None:
            prop = self.session.query(Property).filter(Property.term == term).one_or_none()
            if prop is None:
                raise UnknownProperty(term)
            self._properties[term] = prop
        return prop

    # ── Lookup ─────────────────────────────────────────────────────────

    def find_by_property(self, term: str, value: str) -> list[int]:
        prop = self._property(term)
        rows = (
            self.session.query(RecordValue.record_id)
            .filter(RecordValue.property_id == prop.id, RecordValue.value == value)
            .distinct()
            .order_by(RecordValue.record_id)
            .all()
        )
        return [r for (r,) in rows]

    def get(self, record_id: int) -> Optional[Record]:
        return self.session.get(Record, record_id)

    # ── Writes ─────────────────────────────────────────────────────────

    def create(
        self,
        record: MappedRecord,
        *,
        resource_type: str = "items",
        is_public: bool = True,
        owner_id: Optional[int] = None,
    ) -> int:
        self._check_media(record.media)
        owner = owner_id if owner_id is not None else self.default_owner_id

        def _write():
            rec = Record(resource_type=resource_type, is_public=is_public, owner_id=owner)
            self.session.add(rec)
            self._add_values(rec, record, record.values)
            self._add_media(rec, record.media)
            self.session.flush()
            return rec.id

        return self._savepoint("create", _write)

    def update(self, record_id: int, record: MappedRecord, mode: str) -> None:
        if mode not in UPDATE_MODES:
            raise SinkRejected(f"Unknown update mode: {mode}")
        self._check_media(record.media)

        def _write():
            rec = self.session.get(Record, record_id)
            if rec is None:
                raise SinkRejected(f"Record {record_id} no longer exists")

            if mode == "replace":
                rec.values.clear()
                rec.media.clear()
                self.session.flush()
                self._add_values(rec, record, record.values)
                self._add_media(rec, record.media)
            elif mode == "update":
                terms = set(record.values)
                rec.values[:] = [v for v in rec.values if v.property.term not in terms]
                self.session.flush()
                self._add_values(rec, record, record.values)
                self._add_new_media(rec, record.media)
            else:   # append
                have = {(v.property.term, v.value) for v in rec.values}
                fresh: dict[str, list[str]] = {}
                for term, vals in record.values.items():
                    for val in vals:
                        if (term, val) not in have:
                            fresh.setdefault(term, []).append(val)
                            have.add((term, val))
                self._add_values(rec, record, fresh)
                self._add_new_media(rec, record.media)

            self.session.flush()

        self._savepoint("update", _write)

    def delete(self, record_id: int) -> None:
        def _write():
            rec = self.session.get(Record, record_id)
            if rec is None:
                raise SinkRejected(f"Record {record_id} no longer exists")
            self.session.delete(rec)
            self.session.flush()

        self._savepoint("delete", _write)

    def checkpoint(self) -> None:
        try:
            if self.dry_run:
                self.session.flush()
            else:
                self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise CheckpointFailed(str(exc)) from exc

    # ── Private helpers ────────────────────────────────────────────────

    def _savepoint(self, action: str, fn):
        try:
            with self.session.begin_nested():
                return fn()
        except SQLAlchemyError as exc:
            logger.warning(f"{action} rejected by database: {exc}")
            raise SinkRejected(f"{action} failed: {exc.__class__.__name__}: {exc}") from exc

    def _add_values(self, rec: Record, record: MappedRecord, values: dict[str, list[str]]):
        pos = max((v.position for v in rec.values), default=-1) + 1
        for term, vals in values.items():
            prop = self._property(term)
            for val in vals:
                rec.values.append(RecordValue(
                    property=prop, value=val, lang=record.language or "", position=pos,
                ))
                pos += 1

    def _add_media(self, rec: Record, media: list[MediaDescriptor]):
        pos = max((m.position for m in rec.media), default=-1) + 1
        for desc in media:
            rec.media.append(RecordMedia(ingester=desc.ingester, source=desc.source, position=pos))
            pos += 1

    def _add_new_media(self, rec: Record, media: list[MediaDescriptor]):
        have = {(m.ingester, m.source) for m in rec.media}
        self._add_media(rec, [d for d in media if (d.ingester, d.source) not in have])

    @staticmethod
    def _check_media(media: list[MediaDescriptor]):
        for desc in media:
            if desc.ingester == "url":
                parsed = urlparse(desc.source)
                if parsed.scheme not in ("http", "https") or not parsed.netloc:
                    raise SinkRejected(f"Invalid media URL: {desc.source!r}")
            else:
                raise SinkRejected(f"Unsupported media ingester: {desc.ingester!r}")
