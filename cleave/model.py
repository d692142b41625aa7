"""Cleave model - class declarations, expression trees, placements, endpoints.

This module defines every type the split pipeline passes between phases.
Each node's docstring documents its semantics and invariants.

Architecture:
    Source -> Frontend (parse) -> [model] -> Middleend (signals, placement,
    rewrite) -> Backend (program codegen, artifacts) -> Outputs

The frontend produces ClassModels. The middleend walks, classifies and
rewrites methods, filling the Registry under the server target. The backend
emits the compiled program and, once per server pass, the artifacts.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterator, Union


# ============================================================
# SOURCE LOCATIONS
# ============================================================


@dataclass(frozen=True)
class Loc:
    """Source location for diagnostics.

    Invariants:
    - line >= 1 for valid locations (0 indicates unknown)
    - col >= 0 (0-indexed within line)
    """

    line: int
    col: int


def loc_unknown() -> Loc:
    """Factory for unknown source location."""
    return Loc(0, 0)


# ============================================================
# EXPRESSIONS
#
# Closed tagged union. Call, MemberAccess and Identifier are the only
# shapes the walker pattern-matches; every other host node lowers to
# Other, whose contract is "recurse into children".
# ============================================================


@dataclass
class ExprNode:
    """Base for all expression tree nodes. Abstract."""


@dataclass
class Call(ExprNode):
    """Call site: callee(args...).

    Keyword argument values and starred arguments are lowered into args,
    in source order.
    """

    callee: ExprNode
    args: list[ExprNode] = field(default_factory=list)


@dataclass
class MemberAccess(ExprNode):
    """Attribute access: base.member."""

    base: ExprNode
    member: str


@dataclass
class Identifier(ExprNode):
    """Bare name reference."""

    name: str


@dataclass
class Other(ExprNode):
    """Any node kind not explicitly matched.

    kind is the host node class name (If, For, Lambda, Dict, Constant, ...),
    kept for serialization only. Walkers must visit children.
    """

    kind: str
    children: list[ExprNode] = field(default_factory=list)


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass
class Param:
    """Method parameter. The receiver (self/cls) is never a Param.

    | kind        | Python source      |
    |-------------|--------------------|
    | positional  | def f(self, a)     |
    | keyword     | def f(self, *, a)  |
    | var_args    | def f(self, *a)    |
    | var_kwargs  | def f(self, **a)   |
    """

    name: str
    declared_type: str | None = None
    kind: str = "positional"

    @property
    def is_variadic(self) -> bool:
        return self.kind in ("var_args", "var_kwargs")


@dataclass
class Variable:
    """Class-level field: name: T = value.

    tags come from Annotated[T, "tag", ...] extras. Only "shared" means
    anything to the pipeline; the rest pass through opaquely.
    """

    name: str
    declared_type: str | None = None
    tags: list[str] = field(default_factory=list)
    loc: Loc = field(default_factory=loc_unknown)
    decl: ast.stmt | None = None

    @property
    def is_shared(self) -> bool:
        return "shared" in self.tags


@dataclass
class Method:
    """Method declaration.

    Invariants:
    - body is None only for declarations without a lowered body
    - decl, when present, is the host node the body was lowered from;
      the backend unparses decl, never body
    - tags holds decorator trailing names plus pipeline markers ("keep")
    """

    name: str
    params: list[Param] = field(default_factory=list)
    return_type: str | None = None
    body: ExprNode | None = None
    tags: list[str] = field(default_factory=list)
    is_async: bool = False
    loc: Loc = field(default_factory=loc_unknown)
    decl: ast.FunctionDef | ast.AsyncFunctionDef | None = None

    @property
    def is_constructor(self) -> bool:
        """Paired 1:1 with object initialization, returns nothing."""
        return self.name == "__init__"

    @property
    def param_names(self) -> list[str]:
        return [p.name for p in self.params]

    def with_tag(self, tag: str) -> Method:
        """Copy of this method carrying tag (no-op if already present)."""
        if tag in self.tags:
            return self
        return replace(self, tags=self.tags + [tag])


FieldModel = Union[Variable, Method]


@dataclass
class ClassModel:
    """One declared class, in source field order.

    passthrough holds class-body statements that are neither fields nor
    methods (docstrings, pass, nested classes). They are re-emitted ahead
    of the fields and never analyzed.
    """

    name: str
    fields: list[FieldModel] = field(default_factory=list)
    loc: Loc = field(default_factory=loc_unknown)
    decl: ast.ClassDef | None = None
    passthrough: list[ast.stmt] = field(default_factory=list)

    def methods(self) -> list[Method]:
        return [f for f in self.fields if isinstance(f, Method)]


# ============================================================
# SIGNALS AND PLACEMENT
# ============================================================


@dataclass
class SignalSet:
    """Placement signals found in one method body.

    Accumulates monotonically during one walk; starts all-false.
    """

    has_server_call: bool = False
    has_forced_server_call: bool = False
    has_host_anchor_ref: bool = False
    has_forced_client_call: bool = False

    @property
    def wants_server(self) -> bool:
        return self.has_server_call or self.has_forced_server_call

    @property
    def wants_client(self) -> bool:
        return self.has_host_anchor_ref or self.has_forced_client_call


class Placement(Enum):
    """Where a method's logic must execute.

    | Value           | Client output  | Server output            |
    |-----------------|----------------|--------------------------|
    | SERVER_BOUND    | RPC stub       | verbatim, registered     |
    | CLIENT_ANCHORED | verbatim       | omitted                  |
    | PORTABLE        | verbatim       | verbatim                 |
    """

    SERVER_BOUND = "server-bound"
    CLIENT_ANCHORED = "client-anchored"
    PORTABLE = "portable"


class TargetKind(Enum):
    """Which of the two compiled programs is being produced."""

    CLIENT = "client"
    SERVER = "server"


# ============================================================
# ENDPOINTS
# ============================================================


@dataclass(frozen=True)
class EndpointDescriptor:
    """A server-bound method, as seen by the generated infrastructure.

    Invariants:
    - param_names is in declared order, receiver excluded
    - keyword_only is a subset of param_names
    """

    class_name: str
    method_name: str
    param_names: tuple[str, ...] = ()
    keyword_only: tuple[str, ...] = ()

    @property
    def qualified_name(self) -> str:
        return self.class_name + "." + self.method_name


class Registry:
    """Ordered, append-only endpoint list for one server compilation pass.

    Invariants:
    - empty when the pass starts
    - entries appear in first-seen order; duplicates are kept
    - there is no removal operation
    """

    def __init__(self) -> None:
        self._entries: list[EndpointDescriptor] = []

    def register(self, endpoint: EndpointDescriptor) -> None:
        self._entries.append(endpoint)

    @property
    def entries(self) -> tuple[EndpointDescriptor, ...]:
        return tuple(self._entries)

    def qualified_names(self) -> list[str]:
        return [e.qualified_name for e in self._entries]

    def class_names(self) -> list[str]:
        """Distinct registered class names, in first-seen order."""
        result: list[str] = []
        for e in self._entries:
            if e.class_name not in result:
                result.append(e.class_name)
        return result

    def __iter__(self) -> Iterator[EndpointDescriptor]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return len(self._entries) > 0
