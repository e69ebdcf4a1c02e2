import pytest

from sparknova import events
from sparknova.types import SearchResultItem


@pytest.fixture(autouse=True)
def clean_listeners():
    events.clear_listeners()
    yield
    events.clear_listeners()


@pytest.fixture
def notes_item():
    return SearchResultItem(id="a1", title="Notes", type="app")


class FakeElement:
    """Stand-in for the search input element."""

    def __init__(self):
        self.focus_count = 0

    def focus(self):
        self.focus_count += 1


@pytest.fixture
def element():
    return FakeElement()
