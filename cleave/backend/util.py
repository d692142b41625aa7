"""Shared helpers for backend emitters."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..model import Registry

# Banner placed at the top of every generated file
GENERATED_NOTICE = "Generated by cleave; do not edit."

_PASCAL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def to_snake(name: str) -> str:
    """PascalCase/camelCase to snake_case: TodoList -> todo_list."""
    return _PASCAL_RE.sub("_", name).replace("-", "_").lower()


def to_kebab(name: str) -> str:
    """PascalCase/snake_case to kebab-case: TodoList -> todo-list."""
    return to_snake(name).replace("_", "-")


def to_screaming_snake(name: str) -> str:
    return to_snake(name).upper()


def escape_string(value: str) -> str:
    """Escape a string for use in a double-quoted literal (without quotes).

    Output is valid in both Python and TOML basic strings.
    """
    result: list[str] = []
    for c in value:
        if c == "\\":
            result.append("\\\\")
        elif c == '"':
            result.append('\\"')
        elif c == "\n":
            result.append("\\n")
        elif c == "\t":
            result.append("\\t")
        elif c == "\r":
            result.append("\\r")
        elif ord(c) < 0x20 or ord(c) == 0x7F:
            result.append("\\u%04x" % ord(c))
        else:
            result.append(c)
    return "".join(result)


def quote(value: str) -> str:
    return '"' + escape_string(value) + '"'


class Emitter:
    """Base class for code emitters with indentation tracking."""

    def __init__(self, indent_str: str = "    ") -> None:
        self.indent: int = 0
        self.lines: list[str] = []
        self._indent_str = indent_str

    def line(self, text: str = "") -> None:
        """Emit a line with current indentation."""
        if text:
            self.lines.append(self._indent_str * self.indent + text)
        else:
            self.lines.append("")

    def output(self) -> str:
        """Return the accumulated output as a string, newline-terminated."""
        return "\n".join(self.lines) + "\n"


@dataclass(frozen=True)
class ShellNames:
    """Names shared by every artifact, derived from the first endpoint's class."""

    app_class: str
    shell_class: str
    binding: str


def shell_names(registry: Registry) -> ShellNames:
    first = registry.entries[0].class_name
    return ShellNames(
        app_class=first,
        shell_class=first + "Shell",
        binding=to_screaming_snake(first) + "_SHELL",
    )
