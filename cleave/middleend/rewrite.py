"""Dual-target rewriter: one method, one placement, one compiled target.

| Placement       | TargetKind.SERVER            | TargetKind.CLIENT |
|-----------------|------------------------------|-------------------|
| SERVER_BOUND    | verbatim + registered + keep | async RPC stub    |
| CLIENT_ANCHORED | omitted                      | verbatim          |
| PORTABLE        | verbatim                     | verbatim          |

Constructors pass through untouched in every cell.
"""

from __future__ import annotations

import ast
import copy
from dataclasses import replace

from ..diagnostics import RewriteError
from ..frontend.parse import lower_body
from ..model import (
    EndpointDescriptor,
    Method,
    Placement,
    Registry,
    TargetKind,
)

RPC_PATH = "/rpc"
RPC_CONTENT_TYPE = "application/json"

# Module-level aliases the client prelude binds for stubs
RPC_FETCH = "_rpc_fetch"
RPC_JSON = "_rpc_json"
RPC_TYPING = "_rpc_typing"
RPC_RESPONSE = "_rpc_response"

# Tag exempting a method from dead-code elimination
KEEP_TAG = "keep"

# Weakened return type of every stub
STUB_RETURN_TYPE = RPC_TYPING + ".Any"


def rewrite(
    method: Method,
    placement: Placement,
    target: TargetKind,
    class_name: str,
    registry: Registry | None = None,
) -> Method | None:
    """Rewrite method for target. None means the method is left out."""
    if method.is_constructor:
        return method
    if placement == Placement.SERVER_BOUND:
        _check_describable(method, class_name)
    if target == TargetKind.SERVER:
        if placement == Placement.CLIENT_ANCHORED:
            return None
        if placement == Placement.SERVER_BOUND:
            if registry is not None:
                registry.register(describe(method, class_name))
            return method.with_tag(KEEP_TAG)
        return method
    if placement == Placement.SERVER_BOUND:
        return build_rpc_stub(method, class_name)
    return method


def describe(method: Method, class_name: str) -> EndpointDescriptor:
    keyword_only = tuple(p.name for p in method.params if p.kind == "keyword")
    return EndpointDescriptor(
        class_name, method.name, tuple(method.param_names), keyword_only
    )


def _check_describable(method: Method, class_name: str) -> None:
    for p in method.params:
        if p.is_variadic:
            raise RewriteError(
                "server-bound method '"
                + class_name
                + "."
                + method.name
                + "' cannot take variadic parameter '"
                + p.name
                + "'",
                method.loc.line,
                method.loc.col,
            )


# ============================================================
# CLIENT STUB
# ============================================================


def _name(id: str) -> ast.Name:
    return ast.Name(id=id, ctx=ast.Load())


def _arg(name: str) -> ast.arg:
    return ast.arg(arg=name, annotation=None, type_comment=None)


def _str(value: str) -> ast.Constant:
    return ast.Constant(value=value, kind=None)


def rpc_payload(qualified_name: str, param_names: list[str]) -> ast.Dict:
    """{"method": "C.m", "args": {"p": p, ...}}."""
    args = ast.Dict(
        keys=[_str(p) for p in param_names],
        values=[_name(p) for p in param_names],
    )
    return ast.Dict(keys=[_str("method"), _str("args")], values=[_str(qualified_name), args])


def _stub_arguments(method: Method) -> ast.arguments:
    if method.decl is not None:
        return copy.deepcopy(method.decl.args)
    receiver = [] if "staticmethod" in method.tags else [_arg("self")]
    return ast.arguments(
        posonlyargs=[],
        args=receiver + [_arg(p.name) for p in method.params if p.kind == "positional"],
        kwonlyargs=[_arg(p.name) for p in method.params if p.kind == "keyword"],
        kw_defaults=[None for p in method.params if p.kind == "keyword"],
        vararg=None,
        kwarg=None,
        defaults=[],
    )


def _stub_body(method: Method, class_name: str) -> list[ast.stmt]:
    body: list[ast.stmt] = []
    if method.decl is not None:
        doc = ast.get_docstring(method.decl, clean=False)
        if doc is not None:
            body.append(ast.Expr(value=_str(doc)))
    payload = rpc_payload(class_name + "." + method.name, method.param_names)
    fetch = ast.Call(
        func=_name(RPC_FETCH),
        args=[_str(RPC_PATH)],
        keywords=[
            ast.keyword(arg="method", value=_str("POST")),
            ast.keyword(
                arg="headers",
                value=ast.Dict(keys=[_str("Content-Type")], values=[_str(RPC_CONTENT_TYPE)]),
            ),
            ast.keyword(
                arg="body",
                value=ast.Call(
                    func=ast.Attribute(value=_name(RPC_JSON), attr="dumps", ctx=ast.Load()),
                    args=[payload],
                    keywords=[],
                ),
            ),
        ],
    )
    body.append(
        ast.Assign(
            targets=[ast.Name(id=RPC_RESPONSE, ctx=ast.Store())],
            value=ast.Await(value=fetch),
            type_comment=None,
        )
    )
    parse_json = ast.Call(
        func=ast.Attribute(value=_name(RPC_RESPONSE), attr="json", ctx=ast.Load()),
        args=[],
        keywords=[],
    )
    body.append(ast.Return(value=ast.Await(value=parse_json)))
    return body


def build_rpc_stub(method: Method, class_name: str) -> Method:
    """Replace a server-bound body with a POST /rpc round trip."""
    decorators = copy.deepcopy(method.decl.decorator_list) if method.decl is not None else []
    decl = ast.AsyncFunctionDef(
        name=method.name,
        args=_stub_arguments(method),
        body=_stub_body(method, class_name),
        decorator_list=decorators,
        returns=ast.Attribute(value=_name(RPC_TYPING), attr="Any", ctx=ast.Load()),
        type_comment=None,
        type_params=[],
    )
    if method.decl is not None:
        ast.copy_location(decl, method.decl)
    ast.fix_missing_locations(decl)
    return replace(
        method,
        return_type=STUB_RETURN_TYPE,
        body=lower_body(decl.body),
        is_async=True,
        decl=decl,
    )
