"""Deployment descriptor backend: wrangler.toml for the router and shell."""

from __future__ import annotations

from ..model import Registry
from .util import GENERATED_NOTICE, Emitter, quote, shell_names, to_kebab


def emit_wrangler(
    registry: Registry,
    program_name: str,
    entry_module: str,
    modules: list[str],
    compatibility_date: str,
) -> str:
    """Emit wrangler.toml binding the router's namespace to the shell class."""
    names = shell_names(registry)
    e = Emitter()
    e.line("# Deployment descriptor for " + program_name + ". " + GENERATED_NOTICE)
    e.line("name = " + quote(to_kebab(program_name)))
    e.line("main = " + quote(entry_module))
    e.line("compatibility_date = " + quote(compatibility_date))
    e.line('compatibility_flags = ["python_workers"]')
    e.line()
    e.line("[[rules]]")
    e.line('type = "PythonModule"')
    e.line("globs = [" + ", ".join(quote(m) for m in modules) + "]")
    e.line()
    e.line("[[durable_objects.bindings]]")
    e.line("name = " + quote(names.binding))
    e.line("class_name = " + quote(names.shell_class))
    e.line()
    e.line("[[migrations]]")
    e.line('tag = "v1"')
    e.line("new_sqlite_classes = [" + quote(names.shell_class) + "]")
    return e.output()
