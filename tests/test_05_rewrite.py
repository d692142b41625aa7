"""Tests for the dual-target rewriter."""

import ast

import pytest

from cleave.diagnostics import RewriteError
from cleave.frontend import parse
from cleave.middleend.rewrite import KEEP_TAG, STUB_RETURN_TYPE, rewrite
from cleave.model import Method, Param, Placement, Registry, TargetKind

SOURCE = '''
@split
class Todo:
    def __init__(self):
        self.items = []

    @audited
    def addItem(self, text: str) -> int:
        """Add one item."""
        self.items.append(text)
        return remote("todo.add", text)

    def move(self, src, *, dst):
        return persist(src, dst)

    @staticmethod
    def ping():
        return remote("ping")

    def render(self):
        js.document.title = "todo"

    def format(self, s):
        return "- " + s
'''


def _methods() -> dict[str, Method]:
    cls = parse(SOURCE).classes[0]
    return {m.name: m for m in cls.methods()}


def _unparse(method: Method) -> str:
    return ast.unparse(method.decl)


# ============================================================
# constructors
# ============================================================


@pytest.mark.parametrize("target", list(TargetKind))
@pytest.mark.parametrize("placement", list(Placement))
def test_constructor_always_passes_through(target, placement):
    init = _methods()["__init__"]
    registry = Registry()
    assert rewrite(init, placement, target, "Todo", registry) is init
    assert len(registry) == 0


# ============================================================
# server target
# ============================================================


def test_server_omits_client_anchored():
    registry = Registry()
    render = _methods()["render"]
    assert rewrite(render, Placement.CLIENT_ANCHORED, TargetKind.SERVER, "Todo", registry) is None
    assert len(registry) == 0


def test_server_keeps_portable_unchanged():
    registry = Registry()
    fmt = _methods()["format"]
    assert rewrite(fmt, Placement.PORTABLE, TargetKind.SERVER, "Todo", registry) is fmt
    assert len(registry) == 0


def test_server_registers_and_keeps_server_bound():
    registry = Registry()
    add = _methods()["addItem"]
    out = rewrite(add, Placement.SERVER_BOUND, TargetKind.SERVER, "Todo", registry)
    assert out is not None
    assert out.decl is add.decl
    assert out.body is add.body
    assert KEEP_TAG in out.tags
    assert KEEP_TAG not in add.tags
    [endpoint] = registry.entries
    assert endpoint.class_name == "Todo"
    assert endpoint.method_name == "addItem"
    assert endpoint.param_names == ("text",)
    assert endpoint.qualified_name == "Todo.addItem"


def test_server_records_keyword_only_params():
    registry = Registry()
    rewrite(_methods()["move"], Placement.SERVER_BOUND, TargetKind.SERVER, "Todo", registry)
    [endpoint] = registry.entries
    assert endpoint.param_names == ("src", "dst")
    assert endpoint.keyword_only == ("dst",)


# ============================================================
# client target
# ============================================================


def test_client_never_touches_registry():
    registry = Registry()
    for name, m in _methods().items():
        rewrite(m, Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo", registry)
    assert len(registry) == 0


@pytest.mark.parametrize("placement", [Placement.CLIENT_ANCHORED, Placement.PORTABLE])
def test_client_keeps_non_server_methods(placement):
    render = _methods()["render"]
    assert rewrite(render, placement, TargetKind.CLIENT, "Todo") is render


def test_client_stub_shape():
    add = _methods()["addItem"]
    stub = rewrite(add, Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo")
    assert stub is not None
    assert stub.name == "addItem"
    assert stub.params == add.params
    assert stub.is_async
    assert stub.return_type == STUB_RETURN_TYPE
    assert stub.tags == add.tags
    text = _unparse(stub)
    assert text.startswith("@audited\nasync def addItem(self, text: str) -> _rpc_typing.Any:")
    assert '"""Add one item."""' in text
    assert "await _rpc_fetch('/rpc', method='POST'" in text
    assert "headers={'Content-Type': 'application/json'}" in text
    assert "body=_rpc_json.dumps({'method': 'Todo.addItem', 'args': {'text': text}})" in text
    assert "return await _rpc_response.json()" in text
    assert "self.items" not in text


def test_client_stub_body_is_lowered():
    stub = rewrite(_methods()["addItem"], Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo")
    # the stub no longer carries the remote() call
    from cleave.middleend.signals import walk

    assert not walk(stub.body).wants_server


def test_client_stub_for_static_method():
    stub = rewrite(_methods()["ping"], Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo")
    text = _unparse(stub)
    assert text.startswith("@staticmethod\nasync def ping() -> _rpc_typing.Any:")
    assert "{'method': 'Todo.ping', 'args': {}}" in text


def test_client_stub_keeps_keyword_only_signature():
    stub = rewrite(_methods()["move"], Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo")
    text = _unparse(stub)
    assert "async def move(self, src, *, dst)" in text
    assert "'args': {'src': src, 'dst': dst}" in text


def test_client_stub_without_declaration():
    method = Method("addItem", [Param("text")])
    stub = rewrite(method, Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo")
    assert _unparse(stub).startswith("async def addItem(self, text) -> _rpc_typing.Any:")


def test_stub_output_compiles():
    stub = rewrite(_methods()["addItem"], Placement.SERVER_BOUND, TargetKind.CLIENT, "Todo")
    compile(ast.Module(body=[stub.decl], type_ignores=[]), "<stub>", "exec")


# ============================================================
# errors
# ============================================================


@pytest.mark.parametrize("target", list(TargetKind))
def test_variadic_server_bound_is_fatal(target):
    method = Method("addAll", [Param("items", kind="var_args")])
    with pytest.raises(RewriteError, match="variadic parameter 'items'"):
        rewrite(method, Placement.SERVER_BOUND, target, "Todo", Registry())


def test_variadic_portable_is_fine():
    method = Method("fmt", [Param("parts", kind="var_args")])
    assert rewrite(method, Placement.PORTABLE, TargetKind.SERVER, "Todo") is method
