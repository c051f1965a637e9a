"""
db.models - SQLAlchemy ORM declarations.

Tables
------
records        - one row per imported resource (item / item set).
record_values  - EAV store: one row per (record, property, value).
                 Keeps the schema independent of the vocabularies loaded.
record_media   - media attached to a record (ingester + source).
properties     - vocabulary terms the importer may map onto.
users          - owners of records and import runs.
import_runs    - one row per import job, with its terminal summary.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, Column, String, Integer, DateTime, Text, ForeignKey, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def _now():
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Property(Base):
    __tablename__ = "properties"

    id    = Column(Integer, primary_key=True, autoincrement=True)
    term  = Column(String(200), unique=True, nullable=False, index=True)   # dcterms:title
    label = Column(String(200), default="")

    def to_dict(self) -> dict:
        return {"id": self.id, "term": self.term, "label": self.label or ""}


class User(Base):
    __tablename__ = "users"

    id    = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(300), unique=True, nullable=False, index=True)
    name  = Column(String(200), default="")
    created_at = Column(DateTime, default=_now)


class Record(Base):
    __tablename__ = "records"

    id            = Column(Integer, primary_key=True, autoincrement=True)
    resource_type = Column(String(50), nullable=False, default="items", index=True)
    owner_id      = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"),
                           nullable=True, index=True)
    is_public     = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=_now)
    updated_at = Column(DateTime, default=_now, onupdate=_now)

    values = relationship(
        "RecordValue", back_populates="record",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="RecordValue.position",
    )
    media = relationship(
        "RecordMedia", back_populates="record",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="RecordMedia.position",
    )

    def values_by_term(self) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {}
        for v in self.values:
            out.setdefault(v.property.term, []).append(v.value)
        return out

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "resource_type": self.resource_type,
            "owner_id": self.owner_id,
            "is_public": bool(self.is_public),
            "values": self.values_by_term(),
            "media": [m.to_dict() for m in self.media],
            "created_at": self.created_at.isoformat() if self.created_at else "",
            "updated_at": self.updated_at.isoformat() if self.updated_at else "",
        }


class RecordValue(Base):
    __tablename__ = "record_values"

    id          = Column(Integer, primary_key=True, autoincrement=True)
    record_id   = Column(Integer, ForeignKey("records.id", ondelete="CASCADE"),
                         nullable=False, index=True)
    property_id = Column(Integer, ForeignKey("properties.id"), nullable=False)
    value       = Column(Text, nullable=False, default="")
    lang        = Column(String(20), default="")
    position    = Column(Integer, nullable=False, default=0)

    record   = relationship("Record", back_populates="values")
    property = relationship("Property", lazy="joined")

    __table_args__ = (
        Index("ix_value_lookup", "property_id", "value"),
    )


class RecordMedia(Base):
    __tablename__ = "record_media"

    id        = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(Integer, ForeignKey("records.id", ondelete="CASCADE"),
                       nullable=False, index=True)
    ingester  = Column(String(50), nullable=False)
    source    = Column(Text, nullable=False)
    position  = Column(Integer, nullable=False, default=0)

    record = relationship("Record", back_populates="media")

    def to_dict(self) -> dict:
        return {"id": self.id, "ingester": self.ingester, "source": self.source}


class ImportRun(Base):
    """
    Job record for one import.  filename is the caller's original name;
    the file actually read is a disposable copy.
    """
    __tablename__ = "import_runs"

    id         = Column(Integer, primary_key=True, autoincrement=True)
    filename   = Column(String(500), default="")
    filesize   = Column(Integer, default=0)
    media_type = Column(String(100), default="text/csv")
    comment    = Column(Text, default="")
    owner_id   = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status     = Column(String(20), nullable=False, default="pending", index=True)
    error      = Column(Text, default="")
    report_json = Column(Text, default="{}")

    started_at = Column(DateTime, nullable=True)
    ended_at   = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=_now)

    def to_dict(self) -> dict:
        try:
            report = json.loads(self.report_json or "{}")
        except ValueError:
            report = {}
        return {
            "id": self.id,
            "filename": self.filename or "",
            "filesize": self.filesize or 0,
            "media_type": self.media_type or "",
            "comment": self.comment or "",
            "owner_id": self.owner_id,
            "status": self.status,
            "error": self.error or "",
            "report": report,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
