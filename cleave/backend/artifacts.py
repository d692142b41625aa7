"""Artifact emitter: Registry -> shell, router, descriptor, manifest.

Runs once per server compilation, after the program has been generated.
All four artifacts are derived from the same registry contents, so they
agree on the endpoint set and on parameter order.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..model import Registry, loc_unknown
from .manifest import emit_manifest
from .python import EXPORT_FOOTER_LINE, EXPORTS_NAME
from .router import emit_router
from .shell import emit_shell
from .wrangler import emit_wrangler

if TYPE_CHECKING:
    from ..host import Compilation

SHELL_MODULE = "shell"
ROUTER_MODULE = "router"
DESCRIPTOR_FILE = "wrangler.toml"
MANIFEST_FILE = "API.md"

# Modules the program must not shadow: the artifacts and the shell's own imports
RESERVED_MODULES: frozenset[str] = frozenset(
    {SHELL_MODULE, ROUTER_MODULE, "builtins", "inspect", "json", "urllib", "workers"}
)

# Shared scope every module in the worker can see by bare name
GLOBAL_SCOPE_EXPR = '__import__("builtins").__dict__'


def substitute_exports(program: str) -> str | None:
    """Point the export footer at the shared global scope. None if not found.

    Only a whole line equal to the footer assignment is rewritten, the last
    one in the program, so matching text inside user code is left alone.
    """
    lines = program.split("\n")
    for i in range(len(lines) - 1, -1, -1):
        if lines[i] == EXPORT_FOOTER_LINE:
            lines[i] = EXPORTS_NAME + " = " + GLOBAL_SCOPE_EXPR
            return "\n".join(lines)
    return None


def emit_artifacts(registry: Registry, compilation: Compilation) -> None:
    """Write the four artifacts and patch the compiled program's exports."""
    options = compilation.options
    program_file = compilation.program_file
    program = compilation.outputs.get(program_file)
    patched = substitute_exports(program) if program is not None else None
    if patched is None:
        compilation.diagnostics.add_warning(
            loc_unknown(),
            "emit",
            "export footer '"
            + EXPORT_FOOTER_LINE
            + "' not found in "
            + program_file
            + "; shell may not locate application classes",
        )
    else:
        compilation.write(program_file, patched)
    shell_file = SHELL_MODULE + ".py"
    router_file = ROUTER_MODULE + ".py"
    compilation.write(shell_file, emit_shell(registry, options.program_name))
    compilation.write(
        router_file, emit_router(registry, SHELL_MODULE, options.instance_name)
    )
    compilation.write(
        DESCRIPTOR_FILE,
        emit_wrangler(
            registry,
            options.program_name,
            router_file,
            [program_file, shell_file, router_file],
            options.compatibility_date,
        ),
    )
    compilation.write(MANIFEST_FILE, emit_manifest(registry))
