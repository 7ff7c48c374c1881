"""Shared fixtures: small CSV inputs and the tables loaded from them."""

import pytest

from csv_sankey import state as session

EXAMPLE_CSV = "Source,Mid,Target\nX,Y,Z\nX,Y,W\n"

REGION_CSV = (
    "Region,Channel,Outcome\n"
    "North,Web,Won\n"
    "North,Store,Lost\n"
    "South,Web,Won\n"
    "South,Phone,Won\n"
)


@pytest.fixture
def example_table() -> session.TableState:
    return session.load_text(EXAMPLE_CSV)


@pytest.fixture
def region_table() -> session.TableState:
    return session.load_text(REGION_CSV)
