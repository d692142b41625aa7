"""Cleave: split Python classes into a browser client and a Workers backend."""

from .host import Compilation, Options, compile_source
from .model import Placement, TargetKind


def split(cls):
    """Mark a class for splitting. Identity at runtime; the compiler strips it."""
    return cls
