"""
schema - Property vocabularies.

Public API:
    load(vocab_path)          → stats dict
    known_terms()             → {term: label}
    seed_properties(session)  → rows added
"""

from schema.vocabulary import load, known_terms, seed_properties   # noqa: F401
