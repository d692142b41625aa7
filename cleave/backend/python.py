"""Program backend: rewritten class models -> compiled Python module.

Module-level statements and unannotated classes are re-emitted verbatim.
Each @split class is rebuilt from its rewritten fields, minus the split
decorator. Every output ends with an export footer that publishes the
split classes into the scope named by EXPORT_SCOPE_EXPR.
"""

from __future__ import annotations

import ast

from ..frontend.parse import SPLIT_DECORATOR, SourceModule, trailing_name
from ..middleend.rewrite import RPC_FETCH, RPC_JSON, RPC_TYPING
from ..model import ClassModel, Method, TargetKind, Variable
from .util import GENERATED_NOTICE

# Export-resolution expression in the footer, rewritten by the artifact emitter
EXPORT_SCOPE_EXPR = "_sys.modules[__name__].__dict__"

EXPORTS_NAME = "_exports"

EXPORT_FOOTER_LINE = EXPORTS_NAME + " = " + EXPORT_SCOPE_EXPR


def _has_stubs(classes: list[ClassModel]) -> bool:
    for cls in classes:
        for m in cls.methods():
            if m.decl is not None and any(
                isinstance(n, ast.Name) and n.id == RPC_FETCH for n in ast.walk(m.decl)
            ):
                return True
    return False


def _variable_decl(var: Variable) -> ast.stmt:
    if var.decl is not None:
        return var.decl
    annotation = ast.parse(var.declared_type or "object", mode="eval").body
    return ast.AnnAssign(
        target=ast.Name(id=var.name, ctx=ast.Store()),
        annotation=annotation,
        value=None,
        simple=1,
    )


def _method_decl(method: Method) -> ast.stmt:
    if method.decl is not None:
        return method.decl
    return ast.parse(
        "def " + method.name + "(self, " + ", ".join(method.param_names) + "): ..."
    ).body[0]


def rebuild_class(cls: ClassModel) -> ast.ClassDef:
    """ClassDef for cls with its current fields, split decorator removed."""
    body: list[ast.stmt] = list(cls.passthrough)
    for f in cls.fields:
        if isinstance(f, Method):
            body.append(_method_decl(f))
        else:
            body.append(_variable_decl(f))
    if not body:
        body = [ast.Pass()]
    decorators: list[ast.expr] = []
    bases: list[ast.expr] = []
    keywords: list[ast.keyword] = []
    if cls.decl is not None:
        decorators = [
            d for d in cls.decl.decorator_list if trailing_name(d) != SPLIT_DECORATOR
        ]
        bases = cls.decl.bases
        keywords = cls.decl.keywords
    node = ast.ClassDef(
        name=cls.name,
        bases=bases,
        keywords=keywords,
        body=body,
        decorator_list=decorators,
        type_params=getattr(cls.decl, "type_params", []),
    )
    if cls.decl is not None:
        ast.copy_location(node, cls.decl)
    return ast.fix_missing_locations(node)


def _is_head(stmt: ast.stmt, index: int) -> bool:
    """Module docstring or __future__ import: must stay ahead of the prelude."""
    if index == 0 and isinstance(stmt, ast.Expr) and isinstance(stmt.value, ast.Constant):
        return isinstance(stmt.value.value, str)
    return isinstance(stmt, ast.ImportFrom) and stmt.module == "__future__"


def _prelude(target: TargetKind, classes: list[ClassModel]) -> list[str]:
    lines = ["import sys as _sys"]
    if target == TargetKind.CLIENT and _has_stubs(classes):
        lines.append("import json as " + RPC_JSON)
        lines.append("import typing as " + RPC_TYPING)
        lines.append("from pyodide.http import pyfetch as " + RPC_FETCH)
    return lines


def _footer(classes: list[ClassModel]) -> list[str]:
    if not classes:
        return []
    lines = [EXPORT_FOOTER_LINE]
    for cls in classes:
        lines.append(EXPORTS_NAME + '["' + cls.name + '"] = ' + cls.name)
    return lines


def emit_program(
    module: SourceModule, classes: list[ClassModel], target: TargetKind
) -> str:
    """Emit the compiled program for target."""
    rebuilt = {id(cls.decl): rebuild_class(cls) for cls in classes}
    head: list[ast.stmt] = []
    rest: list[ast.stmt] = []
    for i, stmt in enumerate(module.tree.body):
        if id(stmt) in rebuilt:
            stmt = rebuilt[id(stmt)]
        if not rest and _is_head(stmt, i):
            head.append(stmt)
        else:
            rest.append(stmt)
    out = ["# " + GENERATED_NOTICE + " Target: " + target.value + "."]
    if head:
        out.append(ast.unparse(ast.Module(body=head, type_ignores=[])))
    out.extend(_prelude(target, classes))
    if rest:
        out.append("")
        out.append(ast.unparse(ast.Module(body=rest, type_ignores=[])))
    footer = _footer(classes)
    if footer:
        out.append("")
        out.extend(footer)
    return "\n".join(out) + "\n"
