"""Host parser: Python source -> ClassModels.

Parses with the stdlib ast module and lowers each @split class into a
ClassModel. Method bodies become ExprNode trees; the source ast nodes
ride along as decl so the backend can re-emit untouched methods verbatim.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field

from ..diagnostics import ParseError
from ..model import (
    Call,
    ClassModel,
    ExprNode,
    FieldModel,
    Identifier,
    Loc,
    MemberAccess,
    Method,
    Other,
    Param,
    Variable,
)

# Class decorator marking a class for splitting
SPLIT_DECORATOR = "split"

# Directive disabling analysis for the whole file
SKIP_DIRECTIVE = "cleave: skip"

# Grammar-only nodes with nothing to walk
_GRAMMAR_NODES = (ast.expr_context, ast.operator, ast.unaryop, ast.cmpop, ast.boolop)


@dataclass
class SourceModule:
    """A parsed module and the classes selected for splitting."""

    tree: ast.Module
    classes: list[ClassModel] = field(default_factory=list)
    skipped: bool = False


def should_skip_file(source: str) -> bool:
    """Check if file has a cleave: skip directive in first 5 lines."""
    for line in source.split("\n", 5)[:5]:
        if SKIP_DIRECTIVE in line:
            return True
    return False


def loc_of(node: ast.AST) -> Loc:
    return Loc(getattr(node, "lineno", 0), getattr(node, "col_offset", 0))


def trailing_name(node: ast.expr) -> str | None:
    """Name of a decorator-like expression: x, a.b.x, x(...) and a.x(...) all give x."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def is_split_class(node: ast.ClassDef) -> bool:
    return any(trailing_name(d) == SPLIT_DECORATOR for d in node.decorator_list)


# ============================================================
# EXPRESSIONS
# ============================================================


def _lowered_children(node: ast.AST) -> list[ast.AST]:
    """Children in the order their lowered forms appear in the parent."""
    if isinstance(node, ast.Call):
        return [node.func] + list(node.args) + [k.value for k in node.keywords]
    if isinstance(node, ast.Attribute):
        return [node.value]
    if isinstance(node, ast.Name):
        return []
    return [
        child
        for child in ast.iter_child_nodes(node)
        if not isinstance(child, _GRAMMAR_NODES)
    ]


def _build(node: ast.AST, children: list[ExprNode]) -> ExprNode:
    if isinstance(node, ast.Call):
        return Call(children[0], children[1:])
    if isinstance(node, ast.Attribute):
        return MemberAccess(children[0], node.attr)
    if isinstance(node, ast.Name):
        return Identifier(node.id)
    return Other(type(node).__name__, children)


def lower_expr(node: ast.AST) -> ExprNode:
    """Lower any ast node into the expression tree.

    Post-order over an explicit stack, so nesting depth is bounded only by
    what ast.parse accepts.
    """
    results: list[ExprNode] = []
    # (node, children_already_lowered)
    stack: list[tuple[ast.AST, bool]] = [(node, False)]
    while stack:
        current, ready = stack.pop()
        children = _lowered_children(current)
        if not ready:
            stack.append((current, True))
            for child in reversed(children):
                stack.append((child, False))
            continue
        start = len(results) - len(children)
        lowered = results[start:]
        del results[start:]
        results.append(_build(current, lowered))
    return results[0]


def lower_body(stmts: list[ast.stmt]) -> ExprNode:
    """Lower a statement list into a single Body node."""
    return Other("Body", [lower_expr(s) for s in stmts])


# ============================================================
# DECLARATIONS
# ============================================================


def _annotation(node: ast.expr | None) -> str | None:
    if node is None:
        return None
    return ast.unparse(node)


def _split_annotated(node: ast.expr | None) -> tuple[str | None, list[str]]:
    """Annotated[T, "a", "b"] -> ("T", ["a", "b"]); anything else -> (T, [])."""
    if (
        isinstance(node, ast.Subscript)
        and trailing_name(node.value) == "Annotated"
        and isinstance(node.slice, ast.Tuple)
        and len(node.slice.elts) >= 2
    ):
        inner = node.slice.elts[0]
        tags = [
            e.value
            for e in node.slice.elts[1:]
            if isinstance(e, ast.Constant) and isinstance(e.value, str)
        ]
        return ast.unparse(inner), tags
    return _annotation(node), []


def lower_params(
    node: ast.FunctionDef | ast.AsyncFunctionDef, owner: str
) -> list[Param]:
    """Lower a method signature, dropping the receiver."""
    args = node.args
    positional = list(args.posonlyargs) + list(args.args)
    decorators = [trailing_name(d) for d in node.decorator_list]
    if "staticmethod" not in decorators:
        if not positional:
            raise ParseError(
                "method '" + owner + "." + node.name + "' has no receiver parameter",
                node.lineno,
                node.col_offset,
            )
        positional = positional[1:]
    params = [Param(a.arg, _annotation(a.annotation)) for a in positional]
    if args.vararg is not None:
        params.append(
            Param(args.vararg.arg, _annotation(args.vararg.annotation), "var_args")
        )
    for a in args.kwonlyargs:
        params.append(Param(a.arg, _annotation(a.annotation), "keyword"))
    if args.kwarg is not None:
        params.append(
            Param(args.kwarg.arg, _annotation(args.kwarg.annotation), "var_kwargs")
        )
    return params


def lower_method(node: ast.FunctionDef | ast.AsyncFunctionDef, owner: str) -> Method:
    tags = [t for t in (trailing_name(d) for d in node.decorator_list) if t is not None]
    return Method(
        name=node.name,
        params=lower_params(node, owner),
        return_type=_annotation(node.returns),
        body=lower_body(node.body),
        tags=tags,
        is_async=isinstance(node, ast.AsyncFunctionDef),
        loc=loc_of(node),
        decl=node,
    )


def _lower_variable(node: ast.stmt) -> Variable | None:
    """Class-level single-name assignment -> Variable, else None."""
    if isinstance(node, ast.AnnAssign) and isinstance(node.target, ast.Name):
        declared, tags = _split_annotated(node.annotation)
        return Variable(node.target.id, declared, tags, loc_of(node), node)
    if (
        isinstance(node, ast.Assign)
        and len(node.targets) == 1
        and isinstance(node.targets[0], ast.Name)
    ):
        return Variable(node.targets[0].id, None, [], loc_of(node), node)
    return None


def lower_class(node: ast.ClassDef) -> ClassModel:
    fields: list[FieldModel] = []
    passthrough: list[ast.stmt] = []
    seen: set[str] = set()
    redefinable: set[str] = set()
    for stmt in node.body:
        lowered: FieldModel | None
        if isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
            lowered = lower_method(stmt, node.name)
        else:
            lowered = _lower_variable(stmt)
        if lowered is None:
            passthrough.append(stmt)
            continue
        if isinstance(lowered, Method) and lowered.name in seen:
            if lowered.name not in redefinable and not _redefines(lowered):
                raise ParseError(
                    "duplicate method '" + node.name + "." + lowered.name + "'",
                    stmt.lineno,
                    stmt.col_offset,
                )
        seen.add(lowered.name)
        if isinstance(lowered, Method) and "overload" in lowered.tags:
            redefinable.add(lowered.name)
        fields.append(lowered)
    return ClassModel(node.name, fields, loc_of(node), node, passthrough)


def _redefines(method: Method) -> bool:
    """@x.setter and @x.deleter legitimately reuse the getter's name."""
    return "setter" in method.tags or "deleter" in method.tags


# ============================================================
# MODULE
# ============================================================


def parse(source: str) -> SourceModule:
    """Parse Python source and lower every @split class."""
    try:
        tree = ast.parse(source)
    except SyntaxError as e:
        raise ParseError(e.msg, e.lineno or 0, (e.offset or 1) - 1) from e
    if should_skip_file(source):
        return SourceModule(tree, [], True)
    classes = [
        lower_class(node)
        for node in tree.body
        if isinstance(node, ast.ClassDef) and is_split_class(node)
    ]
    return SourceModule(tree, classes, False)
