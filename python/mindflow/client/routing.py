"""Route classification and the auth gate for client navigation."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

PUBLIC_ROUTES: frozenset[str] = frozenset(
    {"/login", "/signup", "/forgot-password", "/reset-password"}
)

LOGIN_ROUTE = "/login"


class GateAction(str, Enum):
    RENDER = "render"
    WAIT = "wait"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    redirect_to: str | None = None


def is_public_route(path: str) -> bool:
    """True for routes reachable without a session. Trailing slashes are ignored."""
    normalized = path.split("?", 1)[0].rstrip("/") or "/"
    return normalized in PUBLIC_ROUTES


def resolve_gate(auth_state: Any, path: str) -> GateDecision:
    """Decide what a route should do given the current auth state.

    auth_state needs `initialized` and `user` attributes (an AuthStore works).
    Protected routes wait only for the first auth resolution; later
    `loading` flags never block rendering.
    """
    if is_public_route(path):
        return GateDecision(GateAction.RENDER)
    if not auth_state.initialized:
        return GateDecision(GateAction.WAIT)
    if auth_state.user is None:
        return GateDecision(GateAction.REDIRECT, redirect_to=LOGIN_ROUTE)
    return GateDecision(GateAction.RENDER)
