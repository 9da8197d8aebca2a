"""Access control: authentication against the store, then policy evaluation.

``authorize`` always returns one of three outcomes:

- ``Allowed(result)``: hand ``result`` to the protected resource.
- ``Unauthorized(error)``: malformed header or bad credentials (HTTP 401).
- ``Forbidden(result)``: valid identity, refused by the policy (HTTP 403).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from htpasswd_gate.errors import AuthenticationError, HeaderError, InvalidCredentials
from htpasswd_gate.header import parse_authorization
from htpasswd_gate.policy import ANONYMOUS, AuthResult, LoggedUser, PolicyLike
from htpasswd_gate.store import HtpasswdStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allowed:
    result: AuthResult


@dataclass(frozen=True)
class Unauthorized:
    """Compared by ``reason`` and ``message``; the wrapped exception is not compared."""

    error: AuthenticationError = field(compare=False)
    reason: str = field(init=False)
    message: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "reason", self.error.kind)
        object.__setattr__(self, "message", str(self.error))

    @property
    def malformed_header(self) -> bool:
        return isinstance(self.error, HeaderError)


@dataclass(frozen=True)
class Forbidden:
    result: AuthResult

    @property
    def message(self) -> str:
        return "Insufficient privileges to access this resource"


Outcome = Union[Allowed, Unauthorized, Forbidden]


def authenticate(header_value: bytes | str | None, store: HtpasswdStore) -> AuthResult:
    """Turn an Authorization header into an AuthResult.

    Raises ``HeaderError`` for a malformed header (the store is not consulted)
    and ``InvalidCredentials`` when the pair does not match.
    """
    credentials = parse_authorization(header_value)
    if credentials is None:
        return ANONYMOUS
    if not store.is_valid(credentials.user, credentials.password):
        raise InvalidCredentials()
    return LoggedUser(user=credentials.user)


def authorize(header_value: bytes | str | None, store: HtpasswdStore, policy: PolicyLike) -> Outcome:
    """Authenticate the request, then ask ``policy`` whether to admit it."""
    try:
        result = authenticate(header_value, store)
    except AuthenticationError as e:
        logger.info(f"Authentication rejected: {e.kind}")
        return Unauthorized(e)

    if not policy(result):
        logger.info(f"Access forbidden for {result} by {policy!r}")
        return Forbidden(result)
    return Allowed(result)
