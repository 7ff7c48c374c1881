"""Smoke test for the Streamlit script."""

from pathlib import Path

from streamlit.testing.v1 import AppTest

APP = Path(__file__).resolve().parent.parent / "app.py"


class TestApp:
    def test_starts_without_data(self) -> None:
        """The app renders its empty state and disables exports."""
        at = AppTest.from_file(str(APP), default_timeout=30).run()

        assert not at.exception
        assert at.title[0].value == "Sankey Diagram Generator"
        assert any("Upload or paste CSV data" in i.value for i in at.info)
        assert all(b.disabled for b in at.button if b.label.startswith("Download"))
