"""Method analysis and rewriting passes."""

from .placement import classify, place_method
from .rewrite import rewrite
from .signals import walk
