"""Diagnostics collected across one compilation pass."""

from __future__ import annotations

from .model import Loc


class Diagnostic:
    """A non-fatal warning or a fatal error with location and category."""

    def __init__(
        self,
        lineno: int,
        col: int,
        category: str,
        message: str,
        is_warning: bool,
    ):
        self.lineno: int = lineno
        self.col: int = col
        self.category: str = category
        self.message: str = message
        self.is_warning: bool = is_warning

    def __repr__(self) -> str:
        prefix = "warning" if self.is_warning else "error"
        return (
            prefix
            + ":"
            + str(self.lineno)
            + ":"
            + str(self.col)
            + ": ["
            + self.category
            + "] "
            + self.message
        )

    __str__ = __repr__


class Diagnostics:
    """Ordered diagnostic sink for one compilation."""

    def __init__(self) -> None:
        self.items: list[Diagnostic] = []

    def add_error(self, loc: Loc, category: str, message: str) -> None:
        self.items.append(Diagnostic(loc.line, loc.col, category, message, False))

    def add_warning(self, loc: Loc, category: str, message: str) -> None:
        self.items.append(Diagnostic(loc.line, loc.col, category, message, True))

    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if not d.is_warning]

    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.is_warning]


class CleaveError(Exception):
    """Fatal error with location info."""

    def __init__(self, msg: str, lineno: int = 0, col: int = 0):
        self.msg: str = msg
        self.lineno: int = lineno
        self.col: int = col
        super().__init__(msg)

    def __str__(self) -> str:
        return "error:" + str(self.lineno) + ":" + str(self.col) + ": " + self.msg


class ParseError(CleaveError):
    """Source could not be parsed or declares something unsupported."""


class RewriteError(CleaveError):
    """A method cannot be rewritten for the requested target."""


class EmitError(CleaveError):
    """Output could not be generated for a valid model."""
