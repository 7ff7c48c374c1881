from __future__ import annotations

import csv
import io

import pandas as pd
import structlog

logger = structlog.get_logger(__name__)

DELIMITERS = ",\t;|"
_SNIFF_SAMPLE = 64 * 1024


class CsvParseError(ValueError):
    """Raised when pasted or uploaded text cannot be read as CSV."""


def sniff_delimiter(text: str) -> str:
    """Comma, tab, semicolon or pipe, guessed from the text; comma when unclear."""
    try:
        return csv.Sniffer().sniff(text[:_SNIFF_SAMPLE], delimiters=DELIMITERS).delimiter
    except csv.Error:
        return ","


def _max_width(text: str, delimiter: str) -> int:
    return max((len(fields) for fields in csv.reader(io.StringIO(text), delimiter=delimiter)), default=0)


def parse_csv_text(text: str) -> pd.DataFrame:
    """
    Parse delimited text into a frame of raw string fields.

    The delimiter is detected, so spreadsheet pastes (tab separated) work.
    Columns are positional (0..n-1); the header row is kept as row 0.
    Rows may be ragged: short rows are padded with "" up to the widest row.
    Fields are not stripped, and blank lines are skipped.
    """
    if not text.strip():
        return pd.DataFrame()

    try:
        sep = sniff_delimiter(text)
        width = _max_width(text, sep)
        df = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            header=None,
            names=list(range(width)),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.warning("CSV parse failed", error=str(e))
        raise CsvParseError(f"Could not parse CSV: {e}") from e

    df = df.fillna("")
    logger.debug("CSV parsed", rows=len(df), columns=width, delimiter=sep)
    return df


def read_csv_upload(data: bytes) -> pd.DataFrame:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.warning("CSV upload is not UTF-8", error=str(e))
        raise CsvParseError("Uploaded file is not UTF-8 encoded text.") from e
    return parse_csv_text(text)


def split_header(df: pd.DataFrame) -> tuple[list[str], pd.DataFrame]:
    """First row is always the header; the rest are body rows."""
    if df.empty:
        return [], pd.DataFrame()
    headers = df.iloc[0].tolist()
    body = df.iloc[1:].reset_index(drop=True)
    return headers, body
