"""Host compiler: drives one compiled output end to end.

    parse -> configure hook -> build hook per @split class -> [dce]
          -> program codegen -> after-generate callbacks

A Compilation is created per compiled output and never shared, so the
client and server passes each get their own SplitPass and Registry.
"""

from __future__ import annotations

import keyword
from dataclasses import dataclass, replace
from typing import Callable

from .backend.artifacts import RESERVED_MODULES
from .backend.python import emit_program
from .diagnostics import CleaveError, Diagnostics, EmitError
from .frontend.parse import SourceModule, parse
from .middleend.dce import eliminate_dead_methods
from .model import ClassModel, TargetKind
from .split import SplitPass

DEFAULT_PROGRAM_NAME = "app"
DEFAULT_INSTANCE_NAME = "singleton"
DEFAULT_COMPATIBILITY_DATE = "2024-12-01"


def program_name_problem(name: str) -> str | None:
    """Why name cannot be the program module, or None if it can."""
    if not name.isidentifier() or keyword.iskeyword(name):
        return "must be a Python identifier"
    if name in RESERVED_MODULES:
        return "'" + name + "' collides with a generated or imported module"
    return None


@dataclass
class Options:
    """Settings for one compiled output."""

    target: TargetKind = TargetKind.CLIENT
    program_name: str = DEFAULT_PROGRAM_NAME
    dce: bool = False
    instance_name: str = DEFAULT_INSTANCE_NAME
    compatibility_date: str = DEFAULT_COMPATIBILITY_DATE


class Compilation:
    """State of one compiled output: classes, outputs, diagnostics, callbacks."""

    def __init__(self, options: Options) -> None:
        self.options = options
        self.diagnostics = Diagnostics()
        self.module: SourceModule | None = None
        self.split_pass: SplitPass | None = None
        self.classes: list[ClassModel] = []
        self.outputs: dict[str, str] = {}
        self._after_generate: list[Callable[[Compilation], None]] = []

    @property
    def target(self) -> TargetKind:
        return self.options.target

    @property
    def program_file(self) -> str:
        return self.options.program_name + ".py"

    def on_after_generate(self, callback: Callable[[Compilation], None]) -> None:
        """Run callback once the program has been generated."""
        self._after_generate.append(callback)

    def write(self, name: str, text: str) -> None:
        self.outputs[name] = text

    def run_after_generate(self) -> None:
        for callback in self._after_generate:
            callback(self)


def compile_source(
    source: str,
    options: Options,
    split_pass: SplitPass | None = None,
    generate: bool = True,
) -> Compilation:
    """Compile source for options.target. Raises CleaveError on fatal errors.

    With generate=False the pass stops after rewriting: no program, no
    after-generate callbacks, no artifacts.
    """
    problem = program_name_problem(options.program_name)
    if problem is not None:
        raise CleaveError("program name " + problem)
    compilation = Compilation(options)
    module = parse(source)
    compilation.module = module
    if split_pass is None:
        split_pass = SplitPass(options.target)
    compilation.split_pass = split_pass
    split_pass.configure(compilation)
    for cls in module.classes:
        fields = split_pass.build_class(cls.name, cls.fields, compilation.diagnostics)
        compilation.classes.append(replace(cls, fields=fields))
    if options.dce and options.target == TargetKind.SERVER:
        split_decls = {id(cls.decl) for cls in module.classes}
        others = [s for s in module.tree.body if id(s) not in split_decls]
        compilation.classes = eliminate_dead_methods(others, compilation.classes)
    if not generate:
        return compilation
    try:
        program = emit_program(module, compilation.classes, options.target)
    except RecursionError as e:
        raise EmitError(
            "expression nesting too deep to emit " + compilation.program_file
        ) from e
    compilation.write(compilation.program_file, program)
    compilation.run_after_generate()
    return compilation
