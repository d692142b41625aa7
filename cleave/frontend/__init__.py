"""Frontend package - converts Python source to class models."""

from .parse import SourceModule, lower_class, lower_expr, parse, should_skip_file
