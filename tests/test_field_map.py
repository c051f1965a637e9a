import pytest

from import_engine.errors import UnknownProperty
from import_engine.field_map import ColumnMapper, MediaDescriptor, map_row, split_cell
from import_engine.spec import ColumnMapping

HEADER = ["title", "subjects", "media"]


def _mapping(multivalue=()):
    return ColumnMapping.from_config(
        {0: ["dcterms:title"], 1: ["dcterms:subject"]},
        {2: "url"},
        list(multivalue),
    )


def test_multivalue_column_is_split():
    rec = map_row(["T", "a;b;c", ""], HEADER, _mapping(multivalue=[1]), ";")
    assert rec.values["dcterms:subject"] == ["a", "b", "c"]


def test_column_without_multivalue_flag_is_not_split():
    rec = map_row(["T", "a;b;c", ""], HEADER, _mapping(), ";")
    assert rec.values["dcterms:subject"] == ["a;b;c"]


def test_empty_values_dropped():
    rec = map_row(["  ", "a;; ;b", ""], HEADER, _mapping(multivalue=[1]), ";")
    assert "dcterms:title" not in rec.values
    assert rec.values["dcterms:subject"] == ["a", "b"]
    assert rec.media == []


def test_media_descriptors_follow_split_rule():
    mapping = ColumnMapping.from_config({}, {2: "url"}, [2])
    rec = map_row(["", "", "http://a/1.jpg,http://a/2.jpg"], HEADER, mapping, ",")
    assert rec.media == [
        MediaDescriptor("url", "http://a/1.jpg"),
        MediaDescriptor("url", "http://a/2.jpg"),
    ]
    assert rec.values == {}


def test_unmapped_columns_and_short_rows():
    mapping = ColumnMapping.from_config({0: ["dcterms:title"], 5: ["dcterms:date"]})
    rec = map_row(["Only title", "ignored"], HEADER, mapping, ",")
    assert rec.values == {"dcterms:title": ["Only title"]}


def test_same_term_from_two_columns_accumulates():
    mapping = ColumnMapping.from_config({0: ["dcterms:subject"], 1: ["dcterms:subject"]})
    rec = map_row(["x", "y"], HEADER, mapping, ",")
    assert rec.values["dcterms:subject"] == ["x", "y"]


def test_language_is_carried():
    rec = map_row(["T"], HEADER, _mapping(), ",", language="fr")
    assert rec.language == "fr"


def test_split_cell_none():
    assert split_cell(None, ",", True) == []


def test_mapper_validate_rejects_unknown_term(fake_sink):
    mapping = ColumnMapping.from_config({0: ["dcterms:nope"]})
    mapper = ColumnMapper(mapping, ",", resolve_property=fake_sink.resolve_property)
    with pytest.raises(UnknownProperty) as exc:
        mapper.validate()
    assert exc.value.term == "dcterms:nope"


def test_mapper_map_checks_terms_lazily(fake_sink):
    mapping = ColumnMapping.from_config({0: ["dcterms:title"], 1: ["foaf:name"]})
    mapper = ColumnMapper(mapping, ",", resolve_property=fake_sink.resolve_property)
    # the unknown column is empty, so it never reaches the schema
    assert mapper.map(["A", ""], HEADER).values == {"dcterms:title": ["A"]}
    with pytest.raises(UnknownProperty):
        mapper.map(["A", "B"], HEADER)
