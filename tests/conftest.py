"""Pytest configuration for the cleave test suite."""

import sys
from pathlib import Path

import pytest

# Add repo root to path for cleave imports
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

from cleave.host import Options, compile_source  # noqa: E402
from cleave.model import TargetKind  # noqa: E402

TODO_SOURCE = '''\
"""Todo list shared between the browser and the backend."""

from cleave import split


@split
class Todo:
    items: list[str] = []

    def __init__(self):
        self.items = []

    def addItem(self, text):
        self.items.append(text)
        return remote("todo.add", text)

    def render(self):
        js.document.getElementById("list").innerText = "\\n".join(self.items)

    def format(self, s):
        return "- " + s
'''


@pytest.fixture
def todo_source() -> str:
    """Scenarios A-C in one class."""
    return TODO_SOURCE


@pytest.fixture
def compile_for():
    """compile_for(source, "server", **options) -> Compilation."""

    def _compile(source: str, target: str, **kwargs):
        options = Options(target=TargetKind(target), **kwargs)
        return compile_source(source, options)

    return _compile
