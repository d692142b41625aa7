"""Signal walker: find placement signals in a method body.

Matching is purely syntactic. A call is identified by its trailing name
(the bare identifier, or the member of a member-access callee), never by
what the name resolves to, so an unrelated function that happens to be
called `remote` still counts as a server signal.
"""

from __future__ import annotations

from ..model import Call, ExprNode, Identifier, MemberAccess, Other, SignalSet

# Call-name vocabulary -> SignalSet attribute it sets
SIGNAL_CALLS: dict[str, str] = {
    "remote": "has_server_call",
    "persist": "has_server_call",
    "on_server": "has_forced_server_call",
    "on_client": "has_forced_client_call",
}

# Root of every front-end-only reference chain (Pyodide's js module)
HOST_ROOT = "js"

# Second chain element that makes js.<module> a host anchor
HOST_MODULES: frozenset[str] = frozenset(
    {
        "document",
        "window",
        "localStorage",
        "sessionStorage",
        "navigator",
        "location",
    }
)


def call_name(call: Call) -> str | None:
    """Resolve the name a call is matched by."""
    callee = call.callee
    if isinstance(callee, Identifier):
        return callee.name
    if isinstance(callee, MemberAccess):
        return callee.member
    return None


def reference_chain(node: ExprNode) -> list[str] | None:
    """a.b.c -> ["a", "b", "c"]; None unless the chain bottoms out at an identifier."""
    parts: list[str] = []
    while isinstance(node, MemberAccess):
        parts.append(node.member)
        node = node.base
    if not isinstance(node, Identifier):
        return None
    parts.append(node.name)
    parts.reverse()
    return parts


def is_host_anchor(node: ExprNode) -> bool:
    chain = reference_chain(node)
    if chain is None or len(chain) < 2:
        return False
    return chain[0] == HOST_ROOT and chain[1] in HOST_MODULES


def walk(body: ExprNode | None) -> SignalSet:
    """Collect signals from every node reachable from body."""
    signals = SignalSet()
    if body is None:
        return signals
    # (node, visited_as_call_target)
    stack: list[tuple[ExprNode, bool]] = [(body, False)]
    while stack:
        node, is_callee = stack.pop()
        if isinstance(node, Call):
            attr = SIGNAL_CALLS.get(call_name(node) or "")
            if attr is not None:
                setattr(signals, attr, True)
            if is_host_anchor(node.callee):
                signals.has_host_anchor_ref = True
            stack.append((node.callee, True))
            for arg in node.args:
                stack.append((arg, False))
        elif isinstance(node, MemberAccess):
            if not is_callee and is_host_anchor(node):
                signals.has_host_anchor_ref = True
            stack.append((node.base, False))
        elif isinstance(node, Other):
            for child in node.children:
                stack.append((child, False))
    return signals
