from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping

import structlog
from plotly.colors import colorbrewer, qualitative

logger = structlog.get_logger(__name__)

COLOR_SCHEMES: dict[str, list[str]] = {
    "Category10": list(qualitative.D3),
    "Accent": list(colorbrewer.Accent),
    "Dark2": list(qualitative.Dark2),
    "Paired": list(colorbrewer.Paired),
    "Pastel1": list(qualitative.Pastel1),
    "Set1": list(qualitative.Set1),
    "Set2": list(qualitative.Set2),
    "Set3": list(qualitative.Set3),
    "Tableau10": list(qualitative.T10),
    "Vibrant Mix (Custom)": [
        "#FF6347", "#4682B4", "#32CD32", "#FFD700", "#9370DB",
        "#FF4500", "#1E90FF", "#20B2AA", "#FFA500", "#8A2BE2",
        "#DC143C", "#6A5ACD", "#00CED1", "#FF8C00", "#BA55D3",
    ],
}
DEFAULT_SCHEME = "Category10"

# Lowest accepted value per numeric field.
NUMERIC_FLOORS: dict[str, int] = {
    "font_size": 1,
    "node_padding": 0,
    "width": 100,
    "height": 100,
}

_LEADING_INT = re.compile(r"^\s*([+-]?[0-9]+)")


def parse_int(raw: Any) -> int:
    """
    Lenient integer parse: leading sign and digits are used ("12px" -> 12,
    "3.9" -> 3); anything that doesn't start with a number becomes 0.
    """
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else 0
    m = _LEADING_INT.match(str(raw)) if raw is not None else None
    return int(m.group(1)) if m else 0


def parse_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    return bool(raw)


@dataclass(frozen=True)
class DiagramConfig:
    font_size: int = 10
    node_padding: int = 10
    width: int = 900
    height: int = 600
    color_scheme: str = DEFAULT_SCHEME
    enable_gradient: bool = True
    auto_sort: bool = False

    @property
    def palette(self) -> list[str]:
        return COLOR_SCHEMES[self.color_scheme]

    def with_value(self, name: str, raw: Any) -> "DiagramConfig":
        """Set one field from raw user input."""
        if name in NUMERIC_FLOORS:
            return replace(self, **{name: parse_int(raw)})
        if name in ("enable_gradient", "auto_sort"):
            return replace(self, **{name: parse_bool(raw)})
        if name == "color_scheme":
            scheme = str(raw)
            if scheme not in COLOR_SCHEMES:
                logger.warning("Unknown color scheme, using default", scheme=scheme, default=DEFAULT_SCHEME)
                scheme = DEFAULT_SCHEME
            return replace(self, color_scheme=scheme)
        raise KeyError(f"Unknown diagram setting: {name}")

    def clamped(self) -> "DiagramConfig":
        """Copy with every numeric field raised to its floor."""
        return replace(self, **{k: max(getattr(self, k), floor) for k, floor in NUMERIC_FLOORS.items()})

    def to_mapping(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DiagramConfig":
        cfg = cls()
        known = {f.name for f in fields(cls)}
        if data is None:
            return cfg
        if not isinstance(data, Mapping):
            raise ValueError(f"Diagram settings must be a mapping, not {type(data).__name__}")
        for key, raw in data.items():
            if key in known:
                cfg = cfg.with_value(key, raw)
        return cfg
