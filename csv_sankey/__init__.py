"""Build Sankey flow diagrams from CSV rows."""

__version__ = "0.1.0"
