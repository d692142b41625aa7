"""Serialization of model objects to JSON-compatible dicts."""

from __future__ import annotations

from .model import (
    Call,
    ClassModel,
    EndpointDescriptor,
    ExprNode,
    FieldModel,
    Identifier,
    MemberAccess,
    Method,
    Other,
    Placement,
    Registry,
)


def expr_to_dict(node: ExprNode | None) -> dict[str, object] | None:
    if node is None:
        return None
    if isinstance(node, Call):
        return {
            "_type": "Call",
            "callee": expr_to_dict(node.callee),
            "args": [expr_to_dict(a) for a in node.args],
        }
    if isinstance(node, MemberAccess):
        return {"_type": "MemberAccess", "base": expr_to_dict(node.base), "member": node.member}
    if isinstance(node, Identifier):
        return {"_type": "Identifier", "name": node.name}
    if isinstance(node, Other):
        return {
            "_type": "Other",
            "kind": node.kind,
            "children": [expr_to_dict(c) for c in node.children],
        }
    raise TypeError("unknown expression node: " + type(node).__name__)


def field_to_dict(f: FieldModel, with_body: bool = True) -> dict[str, object]:
    if isinstance(f, Method):
        d: dict[str, object] = {
            "_type": "Method",
            "name": f.name,
            "params": [
                {"name": p.name, "type": p.declared_type, "kind": p.kind} for p in f.params
            ],
            "return_type": f.return_type,
            "tags": list(f.tags),
            "async": f.is_async,
            "line": f.loc.line,
        }
        if with_body:
            d["body"] = expr_to_dict(f.body)
        return d
    return {
        "_type": "Variable",
        "name": f.name,
        "type": f.declared_type,
        "tags": list(f.tags),
        "shared": f.is_shared,
        "line": f.loc.line,
    }


def class_to_dict(cls: ClassModel, with_body: bool = True) -> dict[str, object]:
    return {
        "name": cls.name,
        "line": cls.loc.line,
        "fields": [field_to_dict(f, with_body) for f in cls.fields],
    }


def endpoint_to_dict(endpoint: EndpointDescriptor) -> dict[str, object]:
    d: dict[str, object] = {
        "class": endpoint.class_name,
        "method": endpoint.method_name,
        "params": list(endpoint.param_names),
    }
    if endpoint.keyword_only:
        d["keyword_only"] = list(endpoint.keyword_only)
    return d


def registry_to_list(registry: Registry) -> list[dict[str, object]]:
    return [endpoint_to_dict(e) for e in registry]


def placements_to_dict(placements: dict[str, Placement]) -> dict[str, str]:
    return {name: p.value for name, p in placements.items()}
