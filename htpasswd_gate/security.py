"""Starlette / FastAPI integration.

Two ways of protecting routes:

- ``BasicAuthMiddleware`` applies one policy to every path except an allowlist.
- ``require(policy)`` builds a FastAPI dependency, so each route picks its own
  policy at registration time.

Both translate the gate outcome into HTTP: 401 with a Basic challenge for
``Unauthorized``, 403 for ``Forbidden``.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import HTTPException, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from htpasswd_gate.gate import Forbidden, Outcome, Unauthorized, authorize
from htpasswd_gate.policy import AnyLoggedUser, AuthResult, PolicyLike
from htpasswd_gate.store import HtpasswdStore, StoreHandle

logger = logging.getLogger(__name__)

DEFAULT_REALM = "htpasswd-gate"


def challenge_headers(realm: str) -> dict[str, str]:
    return {"WWW-Authenticate": f'Basic realm="{realm}", charset="UTF-8"'}


def _current_store(store: HtpasswdStore | StoreHandle) -> HtpasswdStore:
    if isinstance(store, StoreHandle):
        return store.current
    return store


def _unauthorized_detail(outcome: Unauthorized) -> str:
    if outcome.malformed_header:
        return f"Malformed authorization header: {outcome.message}"
    return outcome.message


class BasicAuthMiddleware(BaseHTTPMiddleware):
    """Protect routes via HTTP Basic auth against an htpasswd store.

    Paths in ``allow_paths`` skip the check entirely. Admitted requests carry
    their identity in ``request.state.auth_result``.
    """

    def __init__(
        self,
        app,
        *,
        store: HtpasswdStore | StoreHandle,
        policy: PolicyLike | None = None,
        allow_paths: set[str] | None = None,
        realm: str = DEFAULT_REALM,
    ):
        super().__init__(app)
        self._store = store
        self._policy = policy or AnyLoggedUser()
        self._allow_paths = allow_paths if allow_paths is not None else {"/health"}
        self._realm = realm

    def _unauthorized(self, outcome: Unauthorized) -> Response:
        return Response(
            content=_unauthorized_detail(outcome),
            status_code=401,
            headers=challenge_headers(self._realm),
        )

    def _forbidden(self, outcome: Forbidden) -> Response:
        return Response(content=outcome.message, status_code=403)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self._allow_paths:
            return await call_next(request)

        outcome = authorize(
            request.headers.get("Authorization"),
            _current_store(self._store),
            self._policy,
        )
        if isinstance(outcome, Unauthorized):
            return self._unauthorized(outcome)
        if isinstance(outcome, Forbidden):
            return self._forbidden(outcome)

        request.state.auth_result = outcome.result
        return await call_next(request)


def raise_for_outcome(outcome: Outcome, realm: str = DEFAULT_REALM) -> AuthResult:
    """Return the admitted AuthResult or raise the matching HTTPException."""
    if isinstance(outcome, Unauthorized):
        raise HTTPException(
            status_code=401,
            detail=_unauthorized_detail(outcome),
            headers=challenge_headers(realm),
        )
    if isinstance(outcome, Forbidden):
        raise HTTPException(status_code=403, detail=outcome.message)
    return outcome.result


def require(policy: PolicyLike, realm: str | None = None) -> Callable[[Request], AuthResult]:
    """Build a FastAPI dependency enforcing ``policy`` on a single route.

    The store is read from ``request.app.state.htpasswd`` (a ``StoreHandle``
    or ``HtpasswdStore``), once per request.

    Usage:
        @app.get("/private")
        def private(auth: AuthResult = Depends(require(AnyLoggedUser()))):
            ...
    """

    def dependency(request: Request) -> AuthResult:
        store = getattr(request.app.state, "htpasswd", None)
        if store is None:
            logger.error(f"Route {request.url.path} requires htpasswd auth but the app has no store")
            raise RuntimeError("No htpasswd store on app.state.htpasswd. Cannot check credentials")

        outcome = authorize(request.headers.get("Authorization"), _current_store(store), policy)
        route_realm = realm or getattr(request.app.state, "auth_realm", DEFAULT_REALM)
        return raise_for_outcome(outcome, route_realm)

    return dependency
