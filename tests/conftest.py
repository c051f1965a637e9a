import csv

import pytest

import config
import schema
from db import init_db, get_session
from import_engine.errors import CheckpointFailed, SinkRejected, UnknownProperty
from import_engine.sink import PropertyHandle, RecordSink

DEFAULT_TERMS = (
    "dcterms:title", "dcterms:creator", "dcterms:date",
    "dcterms:description", "dcterms:identifier", "dcterms:subject",
)


class FakeSink(RecordSink):
    """
    In-memory RecordSink.  `records` is the working state, `committed`
    the state as of the last successful checkpoint.
    """

    def __init__(self, terms=DEFAULT_TERMS, fail_checkpoint_at=None, reject_values=()):
        self.terms = list(terms)
        self.records = {}
        self.committed = {}
        self.checkpoints = 0
        self.fail_checkpoint_at = fail_checkpoint_at
        self.reject_values = set(reject_values)
        self.updates = []
        self.on_create = None
        self._next_id = 1

    def resolve_property(self, term):
        if term not in self.terms:
            raise UnknownProperty(term)
        return PropertyHandle(self.terms.index(term) + 1, term)

    def find_by_property(self, term, value):
        return [rid for rid, rec in sorted(self.records.items())
                if value in rec["values"].get(term, [])]

    def create(self, record, *, resource_type="items", is_public=True, owner_id=None):
        self._reject(record)
        rid = self._next_id
        self._next_id += 1
        self.records[rid] = {
            "values": {k: list(v) for k, v in record.values.items()},
            "media": list(record.media),
            "resource_type": resource_type,
            "is_public": is_public,
            "owner_id": owner_id,
        }
        if self.on_create:
            self.on_create(rid)
        return rid

    def update(self, record_id, record, mode):
        self._reject(record)
        rec = self.records[record_id]
        if mode == "replace":
            rec["values"] = {}
            rec["media"] = []
        for term, vals in record.values.items():
            if mode == "append":
                existing = rec["values"].setdefault(term, [])
                for val in vals:
                    if val not in existing:
                        existing.append(val)
            else:
                rec["values"][term] = list(vals)
        rec["media"].extend(record.media)
        self.updates.append((record_id, mode))

    def delete(self, record_id):
        del self.records[record_id]

    def checkpoint(self):
        self.checkpoints += 1
        if self.fail_checkpoint_at == self.checkpoints:
            raise CheckpointFailed("storage unavailable")
        self.committed = {
            rid: {"values": {k: list(v) for k, v in rec["values"].items()}}
            for rid, rec in self.records.items()
        }

    def _reject(self, record):
        for vals in record.values.values():
            for val in vals:
                if val in self.reject_values:
                    raise SinkRejected(f"rejected value {val!r}")


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def write_csv(tmp_path):
    """Return a helper that writes rows to a CSV file and returns its path."""
    def _write(rows, name="data.csv", delimiter=","):
        path = tmp_path / name
        with open(path, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh, delimiter=delimiter)
            for row in rows:
                writer.writerow(row)
        return path
    return _write


@pytest.fixture(autouse=True)
def _temp_staging(tmp_path, monkeypatch):
    """Keep staged copies inside the test's temporary directory."""
    monkeypatch.setattr(config, "STAGING_DIR", tmp_path / "staging")


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.sqlite'}"


@pytest.fixture
def db_session(db_url):
    """Fresh SQLite database with the built-in vocabulary seeded."""
    schema.load(None)
    init_db(db_url)
    session = get_session()
    schema.seed_properties(session)
    session.commit()
    yield session
    session.close()


@pytest.fixture
def client(db_url):
    """Return a Flask test client bound to a fresh database."""
    from main import create_app
    app = create_app(db_url)
    app.config["TESTING"] = True
    return app.test_client()
