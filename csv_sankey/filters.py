from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Mapping, Sequence

import pandas as pd
import structlog

logger = structlog.get_logger(__name__)

ALL = "All"  # sentinel: no filter on this column


@dataclass(frozen=True)
class ColumnMeta:
    options: tuple[str, ...]
    selected: str = ALL


def derive_metadata(headers: Sequence[str], body: pd.DataFrame) -> dict[str, ColumnMeta]:
    """
    Per header: "All" followed by the distinct values of that column in
    first-seen order. Computed once per ingestion from the unfiltered body.
    A repeated header name keeps the metadata of its first column.
    """
    meta: dict[str, ColumnMeta] = {}
    for col, header in enumerate(headers):
        if header in meta:
            continue
        values = body[col].tolist() if col in body.columns else []
        options = [ALL] + [v for v in pd.unique(pd.Series(values, dtype=object)) if v != ALL]
        meta[header] = ColumnMeta(options=tuple(options))
    return meta


def select(metadata: Mapping[str, ColumnMeta], header: str, value: str) -> dict[str, ColumnMeta]:
    """Return a copy of metadata with one column's selection changed."""
    if header not in metadata:
        raise KeyError(f"Unknown column: {header}")
    col = metadata[header]
    if value not in col.options:
        raise ValueError(f"{value!r} is not an observed value of column {header!r}")
    out = dict(metadata)
    out[header] = replace(col, selected=value)
    logger.info("Filter changed", column=header, value=value)
    return out


def selections(metadata: Mapping[str, ColumnMeta]) -> dict[str, str]:
    return {h: m.selected for h, m in metadata.items()}


def apply_filters(body: pd.DataFrame, headers: Sequence[str], selected: Mapping[str, str]) -> pd.DataFrame:
    """
    Keep rows whose field equals the selection (exact string match) in every
    column whose selection is not "All". The full set is re-evaluated on
    every call.
    """
    if body.empty:
        return body

    mask = pd.Series(True, index=body.index)
    for header, value in selected.items():
        if value == ALL or header not in headers:
            continue
        col = list(headers).index(header)
        mask &= body[col] == value
    return body[mask]
