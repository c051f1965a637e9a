"""
import_engine.csv_parser - Low-level delimited-file reading.

Responsibilities:
  • BOM removal (UTF-8 / UTF-8-SIG)
  • Header validation and whitespace stripping
  • Lazy, restartable row iteration with configurable
    delimiter / enclosure / escape, and file line numbers
  • Backslashes outside an escaped enclosure are kept verbatim
  • Media-type sniffing from the file extension
"""

from __future__ import annotations

import csv
from contextlib import closing
from pathlib import Path
from typing import Iterator, Optional

from import_engine.errors import MalformedHeader

MEDIA_TYPES = {
    "csv": "text/csv",
    "tab": "text/tab-separated-values",
    "tsv": "text/tab-separated-values",
}


def detect_media_type(path: str | Path) -> str:
    """Guess the media type of a delimited file from its extension."""
    ext = Path(path).suffix.lower().lstrip(".")
    return MEDIA_TYPES.get(ext, "text/csv")


def default_delimiter(media_type: str) -> str:
    return "\t" if media_type == "text/tab-separated-values" else ","


class TabularReader:
    """
    Stream rows from a delimited text file.

    The header is read (and validated) on open; iterating the reader
    yields the remaining rows as lists of strings.  Each new iteration
    starts again from the first data row.
    """

    def __init__(
        self,
        path: str | Path,
        delimiter: str = ",",
        enclosure: str = '"',
        escape: str = "\\",
        encoding: str = "utf-8",
    ):
        self.path = Path(path)
        self.delimiter = delimiter
        self.enclosure = enclosure
        self.escape = escape or None
        self.encoding = encoding
        self._header: Optional[list[str]] = None

    # ── Context manager (header is validated on entry) ─────────────────

    def __enter__(self) -> "TabularReader":
        self.open()
        return self

    def __exit__(self, *_exc):
        return False

    def open(self) -> list[str]:
        """Read and validate the header row.  Raises MalformedHeader / OSError."""
        with self._open_file() as fh:
            first = next(self._reader(fh), None)
        if not first or not any(cell.strip() for cell in first):
            raise MalformedHeader(f"{self.path.name}: no header row (file empty?)")
        self._header = [cell.strip() for cell in first]
        return self._header

    @property
    def header(self) -> list[str]:
        if self._header is None:
            self.open()
        return self._header

    def __iter__(self) -> Iterator[list[str]]:
        return self.rows()

    def rows(self) -> Iterator[list[str]]:
        """Yield data rows in file order; the file closes when the generator ends."""
        with closing(self.numbered_rows()) as numbered:
            for _line, row in numbered:
                yield row

    def numbered_rows(self) -> Iterator[tuple[int, list[str]]]:
        """
        Yield (line, row) pairs, line being the 1-based file line the
        record starts on.  Blank lines are skipped but still counted, and
        a quoted cell spanning several lines moves the next record down.
        """
        if self._header is None:
            self.open()
        fh = self._open_file()
        try:
            reader = self._reader(fh)
            next(reader, None)                      # header
            while True:
                line = reader.line_num + 1
                row = next(reader, None)
                if row is None:
                    break
                if not row or not any(cell.strip() for cell in row):
                    continue
                yield line, row
        finally:
            fh.close()

    # ── Private helpers ────────────────────────────────────────────────

    def _open_file(self):
        # utf-8-sig strips a leading BOM and is a no-op otherwise
        encoding = "utf-8-sig" if self.encoding.lower() in ("utf-8", "utf8") else self.encoding
        return open(self.path, "r", encoding=encoding, errors="replace", newline="")

    def _reader(self, fh):
        # escape only counts before an enclosure inside a quoted field;
        # anywhere else it is data (no csv escapechar)
        lines = fh
        if self.escape and self.escape != self.enclosure:
            lines = _unescape_enclosures(fh, self.delimiter, self.enclosure, self.escape)
        return csv.reader(
            lines,
            delimiter=self.delimiter,
            quotechar=self.enclosure,
            doublequote=True,
            strict=False,
        )


def _unescape_enclosures(lines, delimiter: str, enclosure: str, escape: str) -> Iterator[str]:
    """Turn escape+enclosure inside quoted fields into a doubled enclosure."""
    in_quotes = False
    for line in lines:
        out = []
        field_start = not in_quotes
        i, n = 0, len(line)
        while i < n:
            ch = line[i]
            nxt = line[i + 1] if i + 1 < n else ""
            if in_quotes:
                if ch == escape and nxt == enclosure:
                    out.append(enclosure * 2)
                    i += 2
                    continue
                if ch == enclosure:
                    if nxt == enclosure:
                        out.append(enclosure * 2)
                        i += 2
                        continue
                    in_quotes = False
            elif ch == enclosure and field_start:
                in_quotes = True
            field_start = not in_quotes and ch == delimiter
            out.append(ch)
            i += 1
        yield "".join(out)


def read_header(
    path: str | Path,
    delimiter: str = ",",
    enclosure: str = '"',
    escape: str = "\\",
) -> list[str]:
    """Return the header row of a file, or raise MalformedHeader."""
    return TabularReader(path, delimiter, enclosure, escape).open()
