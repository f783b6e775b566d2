import copy
import json

import pytest
from rich.console import Console

from clavtarot import tarot_core


@pytest.fixture(scope="session")
def catalog():
    return tarot_core.load_catalog()


@pytest.fixture(scope="session")
def _document():
    with open(tarot_core.DEFAULT_CATALOG_PATH, "r", encoding="utf-8") as fh:
        return json.load(fh)


@pytest.fixture
def document(_document):
    """A fresh, mutable copy of the packaged catalog document."""
    return copy.deepcopy(_document)


@pytest.fixture
def console():
    """Plain-text console that records everything printed."""
    return Console(record=True, width=120, color_system=None, force_terminal=False, highlight=False)
