"""Placement classification: SignalSet -> Placement."""

from __future__ import annotations

from typing import Callable

from ..diagnostics import Diagnostics
from ..model import Method, Placement, SignalSet
from .signals import walk


def classify(
    signals: SignalSet, warn: Callable[[str], None] | None = None
) -> Placement:
    """Pick a placement. Server signals win over client signals.

    A body with both kinds is ambiguous. It still resolves to SERVER_BOUND,
    but warn is told so the author can move the front-end part out.
    """
    if signals.wants_server:
        if signals.wants_client and warn is not None:
            warn(
                "body mixes server and client signals; placing on the server"
                " (client-only references will not be available there)"
            )
        return Placement.SERVER_BOUND
    if signals.wants_client:
        return Placement.CLIENT_ANCHORED
    return Placement.PORTABLE


def place_method(
    method: Method, class_name: str, diagnostics: Diagnostics | None = None
) -> Placement:
    """Walk and classify one method, reporting ambiguity as a warning."""

    def warn(message: str) -> None:
        if diagnostics is not None:
            diagnostics.add_warning(
                method.loc, "placement", class_name + "." + method.name + ": " + message
            )

    return classify(walk(method.body), warn)
