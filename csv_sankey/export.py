from __future__ import annotations

import json
from datetime import datetime, UTC
from typing import Any, Sequence

import pandas as pd
import plotly.graph_objects as go
import structlog

from csv_sankey.config import DiagramConfig

logger = structlog.get_logger(__name__)

DEFAULT_EXPORT_NAME = "sankey-diagram"
PROJECT_SCHEMA_VERSION = 1


def export_file_name(name: str, ext: str) -> str:
    slug = name.strip().replace(" ", "_").lower() or DEFAULT_EXPORT_NAME
    return f"{slug}.{ext}"


def figure_to_png_bytes(fig: go.Figure, config: DiagramConfig) -> bytes:
    """Raster export at the configured diagram size. Requires kaleido."""
    cfg = config.clamped()
    return fig.to_image(format="png", width=cfg.width, height=cfg.height, scale=1)


def figure_to_html_bytes(fig: go.Figure) -> bytes:
    """Standalone HTML; plotly.js is fetched from the CDN when the file is opened."""
    return fig.to_html(include_plotlyjs="cdn", full_html=True).encode("utf-8")


def rows_to_csv_bytes(headers: Sequence[str], body: pd.DataFrame) -> bytes:
    out = pd.DataFrame(body.values.tolist(), columns=list(headers))
    return out.to_csv(index=False).encode("utf-8")


# ---------- Project save/load (JSON) ----------
def project_to_json_bytes(
    name: str,
    headers: Sequence[str],
    body: pd.DataFrame,
    filters: dict[str, str],
    config: DiagramConfig,
) -> bytes:
    payload = {
        "schema_version": PROJECT_SCHEMA_VERSION,
        "name": name,
        "created_utc": datetime.now(UTC).isoformat(timespec="seconds"),
        "settings": config.to_mapping(),
        "filters": dict(filters),
        "headers": list(headers),
        "rows": body.values.tolist(),
    }
    return json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")


def _field(payload: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = payload.get(key, default)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ValueError(f"Project field {key!r} must be a JSON {'object' if kind is dict else 'array'}.")
    return value


def project_from_json_bytes(b: bytes) -> dict[str, Any]:
    """
    Parse a saved project. Returns name, headers, rows (list of string
    lists), filters and a DiagramConfig. Settings are parsed leniently,
    but a field of the wrong JSON type is a ValueError.
    """
    try:
        payload = json.loads(b.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValueError(f"Project file is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ValueError("Project file must contain a JSON object.")

    ver = payload.get("schema_version", PROJECT_SCHEMA_VERSION)
    if isinstance(ver, bool) or not isinstance(ver, int):
        raise ValueError("Project schema_version must be an integer.")
    if ver != PROJECT_SCHEMA_VERSION:
        raise ValueError("Unsupported project schema_version.")

    raw_rows = _field(payload, "rows", list, [])
    if not all(isinstance(row, list) for row in raw_rows):
        raise ValueError("Project field 'rows' must be an array of arrays.")

    headers = [str(h) for h in _field(payload, "headers", list, [])]
    rows = [["" if v is None else str(v) for v in row] for row in raw_rows]
    filters = {str(k): str(v) for k, v in _field(payload, "filters", dict, {}).items()}
    config = DiagramConfig.from_mapping(_field(payload, "settings", dict, {}))

    logger.info("Project loaded", name=payload.get("name"), rows=len(rows), columns=len(headers))
    return {
        "name": str(payload.get("name", "Untitled")),
        "headers": headers,
        "rows": rows,
        "filters": filters,
        "config": config,
    }
