import pytest

from import_engine.csv_parser import (
    TabularReader, default_delimiter, detect_media_type, read_header,
)
from import_engine.errors import MalformedHeader


def test_header_and_rows(write_csv):
    """The header is exposed separately and rows come back in file order."""
    path = write_csv([["title", "creator"], ["A", "x"], ["B", "y"]])
    reader = TabularReader(path)
    assert reader.open() == ["title", "creator"]
    assert list(reader) == [["A", "x"], ["B", "y"]]


def test_rows_restart_from_first_data_row(write_csv):
    path = write_csv([["h"], ["1"], ["2"]])
    reader = TabularReader(path)
    assert list(reader) == [["1"], ["2"]]
    assert list(reader) == [["1"], ["2"]]


def test_quoted_delimiters_and_enclosures(tmp_path):
    """Enclosed delimiters, doubled enclosures and escaped enclosures."""
    path = tmp_path / "q.csv"
    path.write_text(
        'title,note\n'
        '"Hello, world","say ""hi"""\n'
        '"a \\"quoted\\" word",x\n',
        encoding="utf-8",
    )
    rows = list(TabularReader(path))
    assert rows[0] == ["Hello, world", 'say "hi"']
    assert rows[1] == ['a "quoted" word', "x"]


def test_backslashes_outside_enclosures_are_kept(tmp_path):
    path = tmp_path / "paths.csv"
    path.write_text(
        "title,path\n"
        "A,C:\\Users\\x\n"
        "B,ends with \\\n"
        "C,z\n"
        '"D","C:\\dir\\file"\n',
        encoding="utf-8",
    )
    assert list(TabularReader(path)) == [
        ["A", "C:\\Users\\x"],
        ["B", "ends with \\"],
        ["C", "z"],
        ["D", "C:\\dir\\file"],
    ]


def test_escaped_enclosure_spans_lines(tmp_path):
    path = tmp_path / "multi.csv"
    path.write_text('title,note\n"a","first \\"line\nsecond, \\"line\\""\nb,c\n',
                    encoding="utf-8")
    assert list(TabularReader(path).numbered_rows()) == [
        (2, ["a", 'first "line\nsecond, "line"']),
        (4, ["b", "c"]),
    ]


def test_numbered_rows_count_blank_lines(tmp_path):
    path = tmp_path / "gaps.csv"
    path.write_text("a\n1\n\n\n2\n", encoding="utf-8")
    assert list(TabularReader(path).numbered_rows()) == [(2, ["1"]), (5, ["2"])]


def test_custom_delimiter_and_enclosure(tmp_path):
    path = tmp_path / "semi.csv"
    path.write_text("a;b\n'x;1';2\n", encoding="utf-8")
    reader = TabularReader(path, delimiter=";", enclosure="'")
    assert reader.header == ["a", "b"]
    assert list(reader) == [["x;1", "2"]]


def test_empty_file_is_malformed(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(MalformedHeader):
        TabularReader(path).open()


def test_blank_first_row_is_malformed(tmp_path):
    path = tmp_path / "blank.csv"
    path.write_text(",,\nA,B,C\n", encoding="utf-8")
    with pytest.raises(MalformedHeader):
        read_header(path)


def test_bom_and_header_whitespace_stripped(tmp_path):
    path = tmp_path / "bom.csv"
    path.write_bytes(b"\xef\xbb\xbf title , creator\nA,B\n")
    assert read_header(path) == ["title", "creator"]


def test_short_and_long_rows_tolerated(write_csv):
    path = write_csv([["a", "b", "c"], ["1"], ["1", "2", "3", "4"]])
    assert list(TabularReader(path)) == [["1"], ["1", "2", "3", "4"]]


def test_blank_lines_skipped(tmp_path):
    path = tmp_path / "gaps.csv"
    path.write_text("a\n1\n\n2\n", encoding="utf-8")
    assert list(TabularReader(path)) == [["1"], ["2"]]


def test_missing_file_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        TabularReader(tmp_path / "nope.csv").open()


@pytest.mark.parametrize("name, expected", [
    ("data.csv", "text/csv"),
    ("data.TSV", "text/tab-separated-values"),
    ("data.tab", "text/tab-separated-values"),
    ("data.txt", "text/csv"),
])
def test_detect_media_type(name, expected):
    assert detect_media_type(name) == expected


def test_default_delimiter_for_tsv():
    assert default_delimiter("text/tab-separated-values") == "\t"
    assert default_delimiter("text/csv") == ","
