"""Split pass: the hooks the host compiler calls for one compiled output.

A SplitPass owns the endpoint registry for its compilation. The host calls
configure() once per compiled target and build_class() once per @split
class, in source order. Under the server target, configure() registers a
single after-generate callback that hands the registry to the artifact
emitter.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .backend.artifacts import emit_artifacts
from .diagnostics import Diagnostics
from .middleend.placement import place_method
from .middleend.rewrite import rewrite
from .model import FieldModel, Method, Placement, Registry, TargetKind

if TYPE_CHECKING:
    from .host import Compilation


class SplitPass:
    """Registry and one-shot finalizer guard for one compiled output."""

    def __init__(self, target: TargetKind) -> None:
        self.target = target
        self.registry = Registry()
        self.placements: dict[str, Placement] = {}
        self._finalizer_registered = False

    def configure(self, compilation: Compilation) -> None:
        """Per-target hook. Safe to call more than once."""
        if self.target != TargetKind.SERVER or self._finalizer_registered:
            return
        compilation.on_after_generate(self.finalize)
        self._finalizer_registered = True

    def build_class(
        self,
        class_name: str,
        fields: list[FieldModel],
        diagnostics: Diagnostics | None = None,
    ) -> list[FieldModel]:
        """Per-class hook: rewritten fields, same order, omitted methods dropped."""
        result: list[FieldModel] = []
        for f in fields:
            # constructors run on both sides and are never placed
            if not isinstance(f, Method) or f.is_constructor:
                result.append(f)
                continue
            placement = place_method(f, class_name, diagnostics)
            self.placements[class_name + "." + f.name] = placement
            rewritten = rewrite(f, placement, self.target, class_name, self.registry)
            if rewritten is not None:
                result.append(rewritten)
        return result

    def finalize(self, compilation: Compilation) -> None:
        """After-generate callback: emit artifacts once, if anything registered."""
        if not self.registry:
            return
        emit_artifacts(self.registry, compilation)
