"""
schema.vocabulary - Property vocabularies the importer can map onto.

Dublin Core terms are built in.  Extra vocabularies are JSON files:

    {"prefix": "foaf",
     "properties": [{"local_name": "name", "label": "Name"}, …]}

seed_properties() makes sure every known term has a row in the
properties table; the SQL record sink resolves terms against that table.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session

from db.models import Property

logger = logging.getLogger(__name__)

DCTERMS = (
    "title", "creator", "subject", "description", "publisher", "contributor",
    "date", "type", "format", "identifier", "source", "language", "relation",
    "coverage", "rights", "audience", "alternative", "tableOfContents",
    "abstract", "created", "valid", "available", "issued", "modified",
    "extent", "medium", "isVersionOf", "hasVersion", "isReplacedBy",
    "replaces", "isRequiredBy", "requires", "isPartOf", "hasPart",
    "isReferencedBy", "references", "isFormatOf", "hasFormat", "conformsTo",
    "spatial", "temporal", "mediator", "dateAccepted", "dateCopyrighted",
    "dateSubmitted", "educationLevel", "accessRights", "bibliographicCitation",
    "license", "rightsHolder", "provenance", "instructionalMethod",
    "accrualMethod", "accrualPeriodicity", "accrualPolicy",
)

# ── Module-level state (populated by load()) ──────────────────────────
_terms: dict[str, str] = {}             # term → label


def _label(local_name: str) -> str:
    out = []
    for ch in local_name:
        if ch.isupper() and out:
            out.append(" ")
        out.append(ch)
    return "".join(out).capitalize()


def _reset_builtin():
    _terms.clear()
    for name in DCTERMS:
        _terms[f"dcterms:{name}"] = _label(name)


def load(path: Optional[str | Path] = None) -> dict:
    """
    Reset to the built-in terms, then merge the vocabulary file at *path*
    (if given and present).  Returns a stats dict for logging.
    """
    _reset_builtin()
    extra = 0
    if path and Path(path).exists():
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
        vocabularies = data if isinstance(data, list) else [data]
        for vocab in vocabularies:
            prefix = vocab["prefix"]
            for prop in vocab.get("properties", []):
                name = prop["local_name"]
                _terms[f"{prefix}:{name}"] = prop.get("label") or _label(name)
                extra += 1
    elif path:
        logger.warning(f"Vocabulary file not found: {path}")
    return {"builtin": len(DCTERMS), "extra": extra, "terms": len(_terms)}


def known_terms() -> dict[str, str]:
    if not _terms:
        _reset_builtin()
    return dict(_terms)


def seed_properties(session: Session) -> int:
    """Insert missing Property rows.  Returns how many were added."""
    existing = {t for (t,) in session.query(Property.term)}
    added = 0
    for term, label in known_terms().items():
        if term not in existing:
            session.add(Property(term=term, label=label))
            added += 1
    if added:
        session.flush()
    return added
