"""API manifest backend: one Markdown section per endpoint."""

from __future__ import annotations

import json

from ..middleend.rewrite import RPC_CONTENT_TYPE, RPC_PATH
from ..model import EndpointDescriptor, Registry
from .util import GENERATED_NOTICE, Emitter, shell_names


def example_request(endpoint: EndpointDescriptor) -> str:
    """Request body with each argument shown as "<name>"."""
    args = {p: "<" + p + ">" for p in endpoint.param_names}
    return json.dumps({"method": endpoint.qualified_name, "args": args})


def _emit_section(e: Emitter, endpoint: EndpointDescriptor) -> None:
    e.line("## " + endpoint.qualified_name)
    e.line()
    if endpoint.param_names:
        params = []
        for p in endpoint.param_names:
            suffix = " (keyword-only)" if p in endpoint.keyword_only else ""
            params.append("`" + p + "`" + suffix)
        e.line("Parameters: " + ", ".join(params))
    else:
        e.line("Parameters: none")
    e.line()
    e.line("```json")
    e.line(example_request(endpoint))
    e.line("```")


def emit_manifest(registry: Registry) -> str:
    names = shell_names(registry)
    e = Emitter()
    e.line("# " + names.app_class + " API")
    e.line()
    e.line(GENERATED_NOTICE)
    e.line()
    e.line(
        "Every endpoint is called with `POST "
        + RPC_PATH
        + "`, header `Content-Type: "
        + RPC_CONTENT_TYPE
        + "`, and a JSON body naming the method and its arguments."
        + " Unknown methods answer 404 with `{\"error\": \"Unknown method: <method>\"}`."
    )
    for endpoint in registry:
        e.line()
        _emit_section(e, endpoint)
    return e.output()
