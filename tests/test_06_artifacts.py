"""Tests for the registry-driven artifact emitters."""

import ast
import tomllib

from cleave.backend.artifacts import (
    DESCRIPTOR_FILE,
    GLOBAL_SCOPE_EXPR,
    MANIFEST_FILE,
    emit_artifacts,
    substitute_exports,
)
from cleave.backend.manifest import emit_manifest, example_request
from cleave.backend.python import EXPORT_SCOPE_EXPR
from cleave.backend.router import emit_router
from cleave.backend.shell import dispatch_call, emit_shell
from cleave.backend.util import quote, shell_names, to_kebab, to_snake
from cleave.backend.wrangler import emit_wrangler
from cleave.host import Compilation, Options
from cleave.model import EndpointDescriptor, Registry, TargetKind


def _registry(*endpoints: EndpointDescriptor) -> Registry:
    registry = Registry()
    for e in endpoints:
        registry.register(e)
    return registry


ADD = EndpointDescriptor("Todo", "addItem", ("text",))
CLEAR = EndpointDescriptor("Todo", "clear")
MOVE = EndpointDescriptor("Todo", "move", ("src", "dst"), ("dst",))


def _arms(shell: str) -> list[str]:
    return [
        line.strip()
        for line in shell.splitlines()
        if line.strip().startswith("case ") and line.strip() != "case _:"
    ]


def _sections(manifest: str) -> list[str]:
    return [line[3:] for line in manifest.splitlines() if line.startswith("## ")]


# ============================================================
# naming helpers
# ============================================================


def test_case_conversions():
    assert to_snake("TodoList") == "todo_list"
    assert to_snake("HTTPServer") == "http_server"
    assert to_kebab("todo_app") == "todo-app"


def test_shell_names_follow_first_class():
    names = shell_names(_registry(EndpointDescriptor("TodoList", "add"), ADD))
    assert names.app_class == "TodoList"
    assert names.shell_class == "TodoListShell"
    assert names.binding == "TODO_LIST_SHELL"


def test_quote_escapes():
    assert quote('a"b\\c\n') == '"a\\"b\\\\c\\n"'


# ============================================================
# shell
# ============================================================


def test_one_arm_per_endpoint_in_order():
    shell = emit_shell(_registry(ADD, CLEAR), "app")
    assert _arms(shell) == ['case "Todo.addItem":', 'case "Todo.clear":']
    assert shell.count("case _:") == 1


def test_duplicate_registrations_keep_their_arms():
    shell = emit_shell(_registry(ADD, ADD), "app")
    assert len(_arms(shell)) == 2


def test_dispatch_passes_args_in_declared_order():
    assert dispatch_call(ADD) == 'self.instances["Todo"].addItem(args["text"])'
    assert dispatch_call(CLEAR) == 'self.instances["Todo"].clear()'
    assert dispatch_call(MOVE) == 'self.instances["Todo"].move(args["src"], dst=args["dst"])'


def test_shell_request_checks():
    shell = emit_shell(_registry(ADD), "app")
    method_check = shell.index('if request.method != "POST":')
    path_check = shell.index('if urlparse(request.url).path != "/rpc":')
    assert method_check < path_check
    assert "status=405" in shell
    assert 'Response("Not Found", status=404)' in shell
    assert '"Invalid JSON body"}, 400' in shell
    assert 'missing = _missing(args, ("text",))' in shell
    assert '"Unknown method: " + str(method)}, 404' in shell
    assert "result = await result" in shell


def test_shell_imports_program_and_builds_instances():
    shell = emit_shell(_registry(ADD, EndpointDescriptor("Store", "save")), "todo_app")
    assert "import todo_app  # noqa: F401" in shell
    assert "class TodoShell(DurableObject):" in shell
    assert '"Todo": getattr(builtins, "Todo")(),' in shell
    assert '"Store": getattr(builtins, "Store")(),' in shell
    assert "async def alarm(self):" in shell
    assert "async def webSocketMessage(self, ws, message):" in shell


def test_shell_is_valid_python():
    ast.parse(emit_shell(_registry(ADD, CLEAR, MOVE), "app"))


# ============================================================
# router
# ============================================================


def test_router_forwards_to_singleton():
    router = emit_router(_registry(ADD), "shell", "singleton")
    ast.parse(router)
    assert "from shell import TodoShell" in router
    assert 'INSTANCE_NAME = "singleton"' in router
    assert "namespace = self.env.TODO_SHELL" in router
    assert "namespace.idFromName(INSTANCE_NAME)" in router
    assert "return await stub.fetch(request)" in router


def test_router_instance_name_is_configurable():
    router = emit_router(_registry(ADD), "shell", "tenant-1")
    assert 'INSTANCE_NAME = "tenant-1"' in router


# ============================================================
# descriptor
# ============================================================


def test_wrangler_binds_shell_class():
    text = emit_wrangler(
        _registry(ADD),
        "todo_app",
        "router.py",
        ["todo_app.py", "shell.py", "router.py"],
        "2024-12-01",
    )
    doc = tomllib.loads(text)
    assert doc["name"] == "todo-app"
    assert doc["main"] == "router.py"
    assert doc["compatibility_date"] == "2024-12-01"
    assert doc["compatibility_flags"] == ["python_workers"]
    assert doc["rules"][0]["globs"] == ["todo_app.py", "shell.py", "router.py"]
    [binding] = doc["durable_objects"]["bindings"]
    assert binding == {"name": "TODO_SHELL", "class_name": "TodoShell"}
    assert doc["migrations"][0]["new_sqlite_classes"] == ["TodoShell"]


# ============================================================
# manifest
# ============================================================


def test_manifest_sections_match_registry():
    registry = _registry(ADD, CLEAR, MOVE)
    manifest = emit_manifest(registry)
    assert _sections(manifest) == registry.qualified_names()
    assert "Parameters: `text`" in manifest
    assert "Parameters: none" in manifest
    assert "`dst` (keyword-only)" in manifest


def test_example_request():
    assert example_request(ADD) == '{"method": "Todo.addItem", "args": {"text": "<text>"}}'
    assert example_request(CLEAR) == '{"method": "Todo.clear", "args": {}}'


def test_shell_and_manifest_agree():
    registry = _registry(MOVE, ADD, CLEAR)
    shell = emit_shell(registry, "app")
    arm_names = [arm[len('case "') : -len('":')] for arm in _arms(shell)]
    assert arm_names == _sections(emit_manifest(registry))


# ============================================================
# emit_artifacts
# ============================================================


def test_substitute_exports_rewrites_footer_line_only():
    program = (
        "NOTE = '" + EXPORT_SCOPE_EXPR + "'\n"
        "_exports = " + EXPORT_SCOPE_EXPR + "\n"
        "_exports[\"Todo\"] = Todo\n"
    )
    patched = substitute_exports(program)
    assert patched is not None
    assert patched.startswith("NOTE = '" + EXPORT_SCOPE_EXPR + "'\n")
    assert "\n_exports = " + GLOBAL_SCOPE_EXPR + "\n" in patched
    assert patched.endswith("_exports[\"Todo\"] = Todo\n")


def test_substitute_exports_ignores_indented_match():
    program = "def f():\n    _exports = " + EXPORT_SCOPE_EXPR + "\n"
    assert substitute_exports(program) is None


def test_substitute_exports_missing():
    assert substitute_exports("x = 1\n") is None


def test_emit_artifacts_writes_every_file():
    compilation = Compilation(Options(target=TargetKind.SERVER, program_name="todo"))
    compilation.write("todo.py", "_exports = " + EXPORT_SCOPE_EXPR + "\n")
    emit_artifacts(_registry(ADD), compilation)
    assert sorted(compilation.outputs) == sorted(
        ["todo.py", "shell.py", "router.py", DESCRIPTOR_FILE, MANIFEST_FILE]
    )
    assert GLOBAL_SCOPE_EXPR in compilation.outputs["todo.py"]
    assert "import todo  # noqa: F401" in compilation.outputs["shell.py"]
    assert compilation.diagnostics.items == []


def test_emit_artifacts_warns_when_export_missing():
    compilation = Compilation(Options(target=TargetKind.SERVER))
    emit_artifacts(_registry(ADD), compilation)
    [warning] = compilation.diagnostics.warnings()
    assert warning.category == "emit"
    assert EXPORT_SCOPE_EXPR in warning.message
    # the artifacts are still written
    assert "shell.py" in compilation.outputs
    assert "app.py" not in compilation.outputs
