"""Tests for CSV text and upload ingestion."""

import pytest

from csv_sankey.ingest import CsvParseError, parse_csv_text, read_csv_upload, sniff_delimiter, split_header


class TestParseCsvText:
    def test_rows_are_raw_strings(self) -> None:
        """Numbers stay strings and fields are not stripped."""
        df = parse_csv_text("a,b\n1, 2\n")

        assert df.values.tolist() == [["a", "b"], ["1", " 2"]]

    def test_ragged_rows_are_padded(self) -> None:
        """Rows shorter than the widest row get empty fields."""
        df = parse_csv_text("a,b\nx,y,z\nq\n")

        assert df.values.tolist() == [["a", "b", ""], ["x", "y", "z"], ["q", "", ""]]

    def test_quoted_fields(self) -> None:
        """Commas inside quotes belong to the field."""
        df = parse_csv_text('h1,h2\n"Smith, J",Paid\n')

        assert df.values.tolist()[1] == ["Smith, J", "Paid"]

    def test_blank_lines_are_skipped(self) -> None:
        """Blank lines produce no rows."""
        df = parse_csv_text("a,b\n\nc,d\n\n")

        assert df.values.tolist() == [["a", "b"], ["c", "d"]]

    def test_na_markers_are_kept_as_text(self) -> None:
        """Values like NA are labels, not missing data."""
        df = parse_csv_text("a,b\nNA,None\n")

        assert df.values.tolist()[1] == ["NA", "None"]

    def test_tab_delimited_paste(self) -> None:
        """Spreadsheet pastes are tab separated and split into columns."""
        df = parse_csv_text("Source\tMid\tTarget\nX\tY\tZ\n")

        assert df.values.tolist() == [["Source", "Mid", "Target"], ["X", "Y", "Z"]]

    def test_semicolon_delimited(self) -> None:
        """Semicolon-separated exports keep commas inside fields."""
        df = parse_csv_text("From;To\nSmith, J;Paid\nLee;Owed\n")

        assert df.values.tolist() == [["From", "To"], ["Smith, J", "Paid"], ["Lee", "Owed"]]

    def test_single_column_defaults_to_comma(self) -> None:
        """Text with no recognisable delimiter is one column per line."""
        assert sniff_delimiter("A\nB\n") == ","
        assert parse_csv_text("A\nB\n").values.tolist() == [["A"], ["B"]]

    def test_empty_text(self) -> None:
        """Whitespace-only input gives an empty frame."""
        assert parse_csv_text("  \n ").empty

    def test_unterminated_quote(self) -> None:
        """Tokenizer failures surface as CsvParseError."""
        with pytest.raises(CsvParseError):
            parse_csv_text('a,b\nx,"broken\n')


class TestReadCsvUpload:
    def test_utf8_with_bom(self) -> None:
        """A byte-order mark does not end up in the first header."""
        df = read_csv_upload("\ufeffFrom,To\nA,B\n".encode("utf-8"))

        assert df.values.tolist()[0] == ["From", "To"]

    def test_non_utf8_bytes(self) -> None:
        """Binary or legacy-encoded files are rejected."""
        with pytest.raises(CsvParseError):
            read_csv_upload(b"\xff\xfe\x00a,b")


class TestSplitHeader:
    def test_first_row_is_header(self) -> None:
        """The header row is separated and body rows are re-indexed."""
        headers, body = split_header(parse_csv_text("Source,Target\nA,B\nC,D\n"))

        assert headers == ["Source", "Target"]
        assert body.values.tolist() == [["A", "B"], ["C", "D"]]
        assert list(body.index) == [0, 1]

    def test_empty(self) -> None:
        """An empty frame has no header and no body."""
        headers, body = split_header(parse_csv_text(""))

        assert headers == []
        assert body.empty
