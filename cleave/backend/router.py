"""Stateless router backend: forwards every request to one shell instance."""

from __future__ import annotations

from ..model import Registry
from .util import GENERATED_NOTICE, Emitter, quote, shell_names


def emit_router(registry: Registry, shell_module: str, instance_name: str) -> str:
    """Emit the router. No sharding: every request reaches idFromName(instance_name)."""
    names = shell_names(registry)
    e = Emitter()
    e.line('"""Stateless router for ' + names.app_class + ". " + GENERATED_NOTICE + '"""')
    e.line()
    e.line("from workers import WorkerEntrypoint")
    e.line()
    e.line(
        "from "
        + shell_module
        + " import "
        + names.shell_class
        + "  # noqa: F401  exported for the Durable Object binding"
    )
    e.line()
    e.line("INSTANCE_NAME = " + quote(instance_name))
    e.line()
    e.line()
    e.line("class Default(WorkerEntrypoint):")
    e.indent += 1
    e.line("async def fetch(self, request):")
    e.indent += 1
    e.line("namespace = self.env." + names.binding)
    e.line("stub = namespace.get(namespace.idFromName(INSTANCE_NAME))")
    e.line("return await stub.fetch(request)")
    return e.output()
