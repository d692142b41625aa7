"""Dead method elimination for split classes.

A method is live if its name is referenced (as an identifier or attribute
name) anywhere in the compiled module other than inside its own body, or
if it is a constructor, a dunder, or tagged keep. Runs to a fixed point so
methods only called from dead methods go too.
"""

from __future__ import annotations

import ast
from collections import Counter
from dataclasses import replace

from ..model import ClassModel, Method
from .rewrite import KEEP_TAG


def _names(node: ast.AST) -> Counter[str]:
    counts: Counter[str] = Counter()
    for n in ast.walk(node):
        if isinstance(n, ast.Name):
            counts[n.id] += 1
        elif isinstance(n, ast.Attribute):
            counts[n.attr] += 1
    return counts


def _is_pinned(method: Method) -> bool:
    name = method.name
    if method.is_constructor or KEEP_TAG in method.tags:
        return True
    return name.startswith("__") and name.endswith("__")


def eliminate_dead_methods(
    module_stmts: list[ast.stmt], classes: list[ClassModel]
) -> list[ClassModel]:
    """Drop unreferenced methods. module_stmts excludes the split classes themselves."""
    base: Counter[str] = Counter()
    for stmt in module_stmts:
        base.update(_names(stmt))
    while True:
        total = Counter(base)
        own: dict[int, Counter[str]] = {}
        for cls in classes:
            for stmt in cls.passthrough:
                total.update(_names(stmt))
            for f in cls.fields:
                if f.decl is None:
                    continue
                counts = _names(f.decl)
                total.update(counts)
                if isinstance(f, Method):
                    own[id(f)] = counts
        changed = False
        result: list[ClassModel] = []
        for cls in classes:
            kept = []
            for f in cls.fields:
                if isinstance(f, Method) and not _is_pinned(f):
                    outside = total[f.name] - own.get(id(f), Counter())[f.name]
                    if outside <= 0:
                        changed = True
                        continue
                kept.append(f)
            result.append(replace(cls, fields=kept))
        classes = result
        if not changed:
            return classes
