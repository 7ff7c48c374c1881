from __future__ import annotations

import os

import streamlit as st
import structlog

from csv_sankey import state as session
from csv_sankey.config import COLOR_SCHEMES, NUMERIC_FLOORS, DiagramConfig
from csv_sankey.export import (
    DEFAULT_EXPORT_NAME,
    export_file_name,
    figure_to_html_bytes,
    figure_to_png_bytes,
    project_from_json_bytes,
    project_to_json_bytes,
    rows_to_csv_bytes,
)
from csv_sankey.filters import ALL
from csv_sankey.graph import validate_graph
from csv_sankey.ingest import CsvParseError
from csv_sankey.logging import configure_logging
from csv_sankey.render import build_figure

configure_logging(
    json_output=os.environ.get("CSV_SANKEY_JSON_LOGS", "") == "1",
    level=os.environ.get("CSV_SANKEY_LOG_LEVEL", "INFO"),
)
logger = structlog.get_logger("csv_sankey.app")


# ---------- UI state ----------
def ensure_state():
    if "table" not in st.session_state:
        st.session_state.table = session.EMPTY_TABLE
    if "config" not in st.session_state:
        st.session_state.config = DiagramConfig()
    if "project_name" not in st.session_state:
        st.session_state.project_name = DEFAULT_EXPORT_NAME


def set_table(table: session.TableState, reloaded: bool = True):
    st.session_state.table = table
    if reloaded:
        # fresh widget keys so old filter selections do not leak into new data
        st.session_state.table_gen = st.session_state.get("table_gen", 0) + 1


def on_paste():
    try:
        set_table(session.load_text(st.session_state.paste_text))
    except CsvParseError as e:
        st.session_state["_ingest_error"] = str(e)


def on_upload():
    up = st.session_state.upload_csv
    if up is None:
        return
    try:
        set_table(session.load_bytes(up.getvalue()))
    except CsvParseError as e:
        st.session_state["_ingest_error"] = str(e)


def on_project_upload():
    up = st.session_state.upload_project
    if up is None:
        return
    try:
        proj = project_from_json_bytes(up.getvalue())
        table = session.from_rows(proj["headers"], proj["rows"])
        set_table(session.restore_filters(table, proj["filters"]))
        st.session_state.config = proj["config"]
        st.session_state.project_name = proj["name"]
        st.session_state["_ingest_notice"] = "Project imported."
    except ValueError as e:
        logger.warning("Project import failed", error=str(e))
        st.session_state["_ingest_error"] = f"Project import failed: {e}"


def on_filter_change(header: str, key: str):
    set_table(session.select_filter(st.session_state.table, header, st.session_state[key]), reloaded=False)


# ---------- App ----------
st.set_page_config(page_title="Sankey Diagram Generator", layout="wide")
st.title("Sankey Diagram Generator")

ensure_state()

with st.sidebar:
    st.header("Data Input")
    st.file_uploader("Upload CSV File", type=["csv"], key="upload_csv", on_change=on_upload)
    st.text_area("Or Paste CSV Data", key="paste_text", on_change=on_paste, height=150)
    st.file_uploader("Import Project (.json)", type=["json"], key="upload_project", on_change=on_project_upload)

    if st.session_state.get("_ingest_error"):
        st.error(st.session_state.pop("_ingest_error"))
    if st.session_state.get("_ingest_notice"):
        st.success(st.session_state.pop("_ingest_notice"))

    st.divider()
    st.header("Diagram Settings")

    cfg: DiagramConfig = st.session_state.config
    shown = cfg.clamped()
    # min_value is an input hint only; build_figure clamps again on its own.
    cfg = cfg.with_value(
        "font_size", st.number_input("Font Size", value=shown.font_size, min_value=NUMERIC_FLOORS["font_size"], step=1)
    )
    cfg = cfg.with_value(
        "node_padding",
        st.number_input("Node Padding", value=shown.node_padding, min_value=NUMERIC_FLOORS["node_padding"], step=1),
    )
    cfg = cfg.with_value(
        "width", st.number_input("Diagram Width", value=shown.width, min_value=NUMERIC_FLOORS["width"], step=10)
    )
    cfg = cfg.with_value(
        "height", st.number_input("Diagram Height", value=shown.height, min_value=NUMERIC_FLOORS["height"], step=10)
    )
    schemes = list(COLOR_SCHEMES)
    cfg = cfg.with_value(
        "color_scheme", st.selectbox("Color Scheme", options=schemes, index=schemes.index(cfg.color_scheme))
    )
    cfg = cfg.with_value("enable_gradient", st.checkbox("Enable Gradient", value=cfg.enable_gradient))
    cfg = cfg.with_value("auto_sort", st.checkbox("Auto Sort Nodes", value=cfg.auto_sort))
    st.session_state.config = cfg

table: session.TableState = st.session_state.table
cfg = st.session_state.config

if not table.has_data:
    st.info("Upload or paste CSV data to draw a diagram. The first row is used as column headers.")

# Column filters
if table.has_data:
    st.subheader("Column Filters")
    cols = st.columns(min(len(table.metadata), 4) or 1)
    for i, (header, meta) in enumerate(table.metadata.items()):
        key = f"filter_{st.session_state.get('table_gen', 0)}_{i}"
        with cols[i % len(cols)]:
            st.selectbox(
                header or f"Column {i + 1}",
                options=list(meta.options),
                index=list(meta.options).index(meta.selected),
                format_func=lambda v: "(blank)" if v == "" else v,
                key=key,
                on_change=on_filter_change,
                args=(header, key),
            )
    active = {h: v for h, v in table.selections.items() if v != ALL}
    if active:
        st.caption("Active filters: " + ", ".join(f"{h} = {v}" for h, v in active.items()))

left, right = st.columns([1.0, 2.2], gap="large")

fig = None
build_error = None
body = session.filtered_body(table)
graph = session.graph_for(table)
if table.has_data:
    try:
        fig = build_figure(graph, cfg)
    except ValueError as e:
        build_error = str(e)

with left:
    st.subheader("Export / Save")
    st.session_state.project_name = st.text_input("Export name", value=st.session_state.project_name)
    name = st.session_state.project_name

    if fig is not None:
        try:
            png = figure_to_png_bytes(fig, cfg)
            st.download_button(
                "Download PNG",
                data=png,
                file_name=export_file_name(name, "png"),
                mime="image/png",
                width="stretch",
            )
        except Exception as e:
            logger.warning("PNG export unavailable", error=str(e))
            st.button("Download PNG", disabled=True, width="stretch")
            st.caption(f"PNG export unavailable (kaleido?): {e}")

        st.download_button(
            "Download HTML",
            data=figure_to_html_bytes(fig),
            file_name=export_file_name(name, "html"),
            mime="text/html",
            width="stretch",
        )
    else:
        st.button("Download PNG", disabled=True, width="stretch")
        st.button("Download HTML", disabled=True, width="stretch")

    if table.has_data:
        st.download_button(
            "Export filtered rows (CSV)",
            data=rows_to_csv_bytes(table.headers, body),
            file_name=export_file_name(f"{name}_rows", "csv"),
            mime="text/csv",
            width="stretch",
        )
        st.download_button(
            "Export Project (.json)",
            data=project_to_json_bytes(name, table.headers, table.body, table.selections, cfg),
            file_name=export_file_name(name, "json"),
            mime="application/json",
            width="stretch",
        )

with right:
    st.subheader("Preview")

    if table.has_data:
        v = validate_graph(graph, body.values.tolist())
        with st.expander("Validation", expanded=bool(v.errors)):
            st.write(
                "Rows: **{rows}**  |  Contributing rows: **{valid}**  |  Nodes: **{nodes}**  |  "
                "Links: **{edges}**".format(
                    rows=v.stats.get("rows", 0),
                    valid=v.stats.get("valid_rows", 0),
                    nodes=v.stats.get("nodes", 0),
                    edges=v.stats.get("edges", 0),
                )
            )
            if v.errors:
                st.error("\n".join(v.errors))
            if v.warnings:
                st.warning("\n".join(v.warnings))
            if not v.errors and not v.warnings:
                st.success("No issues detected.")

    if build_error:
        st.error(build_error)
        st.info("Adjust the data or filters and the chart will render.")
    elif fig is not None:
        st.plotly_chart(fig, width="content")

st.caption("CSV tip: If any field contains commas in text fields, wrap those fields in double quotes in the CSV.")
