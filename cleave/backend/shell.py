"""Stateful shell backend: Registry -> Durable Object module.

The shell wraps the server-compiled program. Its fetch() accepts only
POST /rpc and dispatches through a match statement with exactly one arm
per registry entry, in registration order.
"""

from __future__ import annotations

from ..model import EndpointDescriptor, Registry
from ..middleend.rewrite import RPC_PATH
from .util import GENERATED_NOTICE, Emitter, quote, shell_names


def dispatch_call(endpoint: EndpointDescriptor) -> str:
    """self.instances["C"].m(args["a"], b=args["b"])."""
    parts: list[str] = []
    for name in endpoint.param_names:
        value = "args[" + quote(name) + "]"
        if name in endpoint.keyword_only:
            parts.append(name + "=" + value)
        else:
            parts.append(value)
    return (
        "self.instances["
        + quote(endpoint.class_name)
        + "]."
        + endpoint.method_name
        + "("
        + ", ".join(parts)
        + ")"
    )


class ShellBackend(Emitter):
    """Emit the stateful shell module."""

    def __init__(self, program_module: str) -> None:
        super().__init__()
        self.program_module = program_module

    def emit(self, registry: Registry) -> str:
        names = shell_names(registry)
        self.line('"""Stateful shell for ' + names.app_class + " endpoints. " + GENERATED_NOTICE + '"""')
        self.line()
        self.line("import builtins")
        self.line("import inspect")
        self.line("import json")
        self.line("from urllib.parse import urlparse")
        self.line()
        self.line("from workers import DurableObject, Response")
        self.line()
        self.line("import " + self.program_module + "  # noqa: F401  publishes classes into builtins")
        self.line()
        self._emit_helpers()
        self.line()
        self.line()
        self.line("class " + names.shell_class + "(DurableObject):")
        self.indent += 1
        self._emit_init(registry)
        self.line()
        self._emit_fetch(registry)
        self.line()
        self._emit_placeholders()
        self.indent -= 1
        return self.output()

    def _emit_helpers(self) -> None:
        self.line("def _json_response(value, status=200):")
        self.indent += 1
        self.line("return Response(")
        self.indent += 1
        self.line("json.dumps(value),")
        self.line("status=status,")
        self.line('headers={"Content-Type": "application/json"},')
        self.indent -= 1
        self.line(")")
        self.indent -= 1
        self.line()
        self.line()
        self.line("def _missing(args, names):")
        self.indent += 1
        self.line("for name in names:")
        self.indent += 1
        self.line("if name not in args:")
        self.indent += 1
        self.line("return name")
        self.indent -= 2
        self.line("return None")
        self.indent -= 1

    def _emit_init(self, registry: Registry) -> None:
        self.line("def __init__(self, ctx, env):")
        self.indent += 1
        self.line("super().__init__(ctx, env)")
        self.line("self.ctx = ctx")
        self.line("self.env = env")
        self.line("self.instances = {")
        self.indent += 1
        for class_name in registry.class_names():
            self.line(quote(class_name) + ": getattr(builtins, " + quote(class_name) + ")(),")
        self.indent -= 1
        self.line("}")
        self.indent -= 1

    def _emit_fetch(self, registry: Registry) -> None:
        self.line("async def fetch(self, request):")
        self.indent += 1
        self.line('if request.method != "POST":')
        self.line('    return Response("Method Not Allowed", status=405)')
        self.line("if urlparse(request.url).path != " + quote(RPC_PATH) + ":")
        self.line('    return Response("Not Found", status=404)')
        self.line("try:")
        self.line("    payload = json.loads(await request.text())")
        self.line("except ValueError:")
        self.line('    return _json_response({"error": "Invalid JSON body"}, 400)')
        self.line("if not isinstance(payload, dict):")
        self.line('    return _json_response({"error": "Invalid JSON body"}, 400)')
        self.line('method = payload.get("method")')
        self.line('args = payload.get("args") or {}')
        self.line("if not isinstance(args, dict):")
        self.line('    return _json_response({"error": "Invalid arguments"}, 400)')
        self.line("match method:")
        self.indent += 1
        for endpoint in registry:
            self._emit_arm(endpoint)
        self.line("case _:")
        self.indent += 1
        self.line("return _json_response(")
        self.line('    {"error": "Unknown method: " + str(method)}, 404')
        self.line(")")
        self.indent -= 2
        self.line("if inspect.isawaitable(result):")
        self.line("    result = await result")
        self.line("return _json_response(result)")
        self.indent -= 1

    def _emit_arm(self, endpoint: EndpointDescriptor) -> None:
        self.line("case " + quote(endpoint.qualified_name) + ":")
        self.indent += 1
        if endpoint.param_names:
            names = ", ".join(quote(p) for p in endpoint.param_names)
            if len(endpoint.param_names) == 1:
                names += ","
            self.line("missing = _missing(args, (" + names + "))")
            self.line("if missing is not None:")
            self.line('    return _json_response({"error": "Missing argument: " + missing}, 400)')
        self.line("result = " + dispatch_call(endpoint))
        self.indent -= 1

    def _emit_placeholders(self) -> None:
        self.line("async def alarm(self):")
        self.line("    # Timer-triggered entry point; no timers are scheduled yet.")
        self.line("    pass")
        self.line()
        self.line("async def webSocketMessage(self, ws, message):")
        self.line("    # Message-triggered entry point; no handlers are wired yet.")
        self.line("    pass")


def emit_shell(registry: Registry, program_module: str) -> str:
    """Emit the stateful shell importing program_module."""
    return ShellBackend(program_module).emit(registry)
