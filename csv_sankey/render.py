from __future__ import annotations

from typing import Any

import plotly.graph_objects as go
import structlog
from plotly.colors import find_intermediate_color, hex_to_rgb, unlabel_rgb

from csv_sankey.config import DiagramConfig
from csv_sankey.graph import Graph, node_depths, node_values

logger = structlog.get_logger(__name__)

NODE_THICKNESS = 15
LINK_OPACITY = 0.5
MARGIN = dict(l=10, r=10, t=10, b=10)
TITLE_MARGIN_TOP = 50

# plotly drops fixed nodes placed exactly on the plot edge
_EDGE_EPS = 0.001


# ---------- Colors ----------
def to_rgb(color: str) -> tuple[float, float, float]:
    color = color.strip()
    if color.startswith("#"):
        return tuple(float(c) for c in hex_to_rgb(color))  # type: ignore[return-value]
    return tuple(float(c) for c in unlabel_rgb(color))  # type: ignore[return-value]


def rgba(rgb: tuple[float, float, float], alpha: float) -> str:
    r, g, b = (int(round(c)) for c in rgb)
    return f"rgba({r},{g},{b},{alpha})"


def node_colors(graph: Graph, palette: list[str]) -> list[str]:
    """Ordinal palette lookup by first-seen order, cycling when nodes outnumber colors."""
    return [palette[i % len(palette)] for i in range(len(graph.nodes))]


def link_colors(graph: Graph, colors: list[str], gradient: bool) -> list[str]:
    """
    Source color at partial opacity, or, with gradient on, the midpoint of
    source and target colors (a Sankey link trace takes one color per link).
    """
    out: list[str] = []
    for e in graph.edges:
        src = to_rgb(colors[e.source])
        if gradient:
            tgt = to_rgb(colors[e.target])
            src = find_intermediate_color(src, tgt, 0.5, colortype="tuple")
        out.append(rgba(src, LINK_OPACITY))
    return out


# ---------- Fixed layout ----------
def fixed_positions(graph: Graph, cfg: DiagramConfig, plot_height: float) -> tuple[list[float], list[float]]:
    """
    x from topological depth; y keeps first-seen order inside each column.
    Node heights are proportional to value with `node_padding` pixels between
    nodes, scaled so the fullest column fits the plot height.
    """
    depths = node_depths(graph)
    values = node_values(graph)
    max_depth = max(depths) if depths else 0

    columns: dict[int, list[int]] = {}
    for i, d in enumerate(depths):
        columns.setdefault(d, []).append(i)

    pad = float(cfg.node_padding)
    ky = min(
        (plot_height - (len(members) - 1) * pad) / max(sum(values[i] for i in members), 1e-9)
        for members in columns.values()
    )
    if ky <= 0:
        # padding alone overflows the plot; let nodes touch
        pad = 0.0
        ky = min(plot_height / max(sum(values[i] for i in m), 1e-9) for m in columns.values())

    xs = [0.0] * len(graph.nodes)
    ys = [0.0] * len(graph.nodes)
    for d, members in columns.items():
        y = 0.0
        for i in members:
            h = values[i] * ky
            xs[i] = d / max_depth if max_depth else 0.5
            ys[i] = (y + h / 2) / plot_height
            y += h + pad

    def clamp(v: float) -> float:
        return min(max(v, _EDGE_EPS), 1 - _EDGE_EPS)

    return [clamp(x) for x in xs], [clamp(y) for y in ys]


# ---------- Sankey build ----------
def build_figure(graph: Graph, config: DiagramConfig, title: str = "") -> go.Figure:
    """
    Map a graph and diagram settings onto a plotly Sankey figure.

    Raises ValueError when there is nothing to draw, and CircularFlowError
    (a ValueError) when auto-sort is off and the flows contain a cycle.
    """
    if graph.is_empty:
        raise ValueError("No flows found. Each row needs at least two adjacent non-empty fields.")

    cfg = config.clamped()
    colors = node_colors(graph, cfg.palette)
    labels = graph.names

    margin = dict(MARGIN)
    if title:
        margin["t"] = TITLE_MARGIN_TOP

    node_kwargs: dict[str, Any] = dict(
        pad=cfg.node_padding,
        thickness=NODE_THICKNESS,
        line=dict(color="#000", width=0.5),
        label=labels,
        color=colors,
    )

    if cfg.auto_sort:
        arrangement = "snap"
    else:
        plot_height = max(cfg.height - margin["t"] - margin["b"], 1)
        node_kwargs["x"], node_kwargs["y"] = fixed_positions(graph, cfg, plot_height)
        arrangement = "fixed"

    sources = [e.source for e in graph.edges]
    targets = [e.target for e in graph.edges]
    values = [e.value for e in graph.edges]
    link_labels = [f"{labels[s]} → {labels[t]}" for s, t in zip(sources, targets)]

    fig = go.Figure(
        data=[
            go.Sankey(
                arrangement=arrangement,
                node=node_kwargs,
                link=dict(
                    source=sources,
                    target=targets,
                    value=values,
                    label=link_labels,
                    color=link_colors(graph, colors, cfg.enable_gradient),
                ),
                textfont=dict(size=cfg.font_size),
            )
        ]
    )
    fig.update_layout(
        title_text=title or None,
        width=cfg.width,
        height=cfg.height,
        font=dict(size=cfg.font_size, family="sans-serif"),
        margin=margin,
    )
    logger.debug(
        "Sankey figure built",
        nodes=len(graph.nodes),
        edges=len(graph.edges),
        arrangement=arrangement,
        scheme=cfg.color_scheme,
    )
    return fig
