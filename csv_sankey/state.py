"""
Session state transitions.

Only the ingested table (headers, body rows, column metadata) is stored
between Streamlit reruns. Everything downstream (filtered rows, graph,
figure) is rebuilt from it on every call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Mapping, Sequence

import pandas as pd
import plotly.graph_objects as go
import structlog

from csv_sankey import filters as colfilter
from csv_sankey.config import DiagramConfig
from csv_sankey.filters import ColumnMeta
from csv_sankey.graph import Graph, build_graph
from csv_sankey.ingest import parse_csv_text, read_csv_upload, split_header
from csv_sankey.render import build_figure

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, eq=False)
class TableState:
    headers: list[str] = field(default_factory=list)
    body: pd.DataFrame = field(default_factory=pd.DataFrame)
    metadata: dict[str, ColumnMeta] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return bool(self.headers)

    @property
    def selections(self) -> dict[str, str]:
        return colfilter.selections(self.metadata)


EMPTY_TABLE = TableState()


def from_frame(df: pd.DataFrame) -> TableState:
    headers, body = split_header(df)
    if not headers:
        return EMPTY_TABLE
    metadata = colfilter.derive_metadata(headers, body)
    logger.info("Data loaded", rows=len(body), columns=len(headers))
    return TableState(headers=headers, body=body, metadata=metadata)


def from_rows(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> TableState:
    if not headers:
        return EMPTY_TABLE
    width = max([len(headers)] + [len(r) for r in rows])
    padded = [list(r) + [""] * (width - len(r)) for r in [list(headers), *rows]]
    return from_frame(pd.DataFrame(padded, columns=list(range(width))))


def load_text(text: str) -> TableState:
    """Pasted text. Empty input resets to the empty state; CsvParseError propagates."""
    if not text.strip():
        logger.info("Input cleared, resetting state")
        return EMPTY_TABLE
    return from_frame(parse_csv_text(text))


def load_bytes(data: bytes) -> TableState:
    return from_frame(read_csv_upload(data))


def select_filter(state: TableState, header: str, value: str) -> TableState:
    return replace(state, metadata=colfilter.select(state.metadata, header, value))


def restore_filters(state: TableState, saved: Mapping[str, str]) -> TableState:
    """Re-apply saved selections, skipping any that no longer match the data."""
    for header, value in saved.items():
        try:
            state = select_filter(state, header, value)
        except (KeyError, ValueError) as e:
            logger.warning("Saved filter ignored", column=header, value=value, reason=str(e))
    return state


def filtered_body(state: TableState) -> pd.DataFrame:
    return colfilter.apply_filters(state.body, state.headers, state.selections)


def graph_for(state: TableState) -> Graph:
    return build_graph(filtered_body(state).values.tolist())


def render(state: TableState, config: DiagramConfig, title: str = "") -> go.Figure:
    return build_figure(graph_for(state), config, title=title)
