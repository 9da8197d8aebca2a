"""Authentication results and the per-resource policies judging them."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Union


@dataclass(frozen=True)
class Anonymous:
    """No credentials were supplied."""


@dataclass(frozen=True)
class LoggedUser:
    """Credentials were supplied and verified."""

    user: str


AuthResult = Union[Anonymous, LoggedUser]

ANONYMOUS = Anonymous()


class AuthorizationPolicy(ABC):
    """Stateless predicate deciding whether an AuthResult may access a resource.

    Subclass and implement ``allows`` to add a policy; the gate accepts any
    implementation (or a plain callable with the same signature).
    """

    @abstractmethod
    def allows(self, result: AuthResult) -> bool:
        ...

    def __call__(self, result: AuthResult) -> bool:
        return self.allows(result)

    def __repr__(self):
        return f"{type(self).__name__}()"


PolicyLike = Union[AuthorizationPolicy, Callable[[AuthResult], bool]]


class Anyone(AuthorizationPolicy):
    """Admits anonymous requests and every logged user."""

    def allows(self, result: AuthResult) -> bool:
        return True


class AnyLoggedUser(AuthorizationPolicy):
    """Admits any verified identity, refuses anonymous requests."""

    def allows(self, result: AuthResult) -> bool:
        return isinstance(result, LoggedUser)


class OnlyUsers(AuthorizationPolicy):
    """Admits only the listed users."""

    def __init__(self, *users: str):
        self.users = frozenset(users)

    def allows(self, result: AuthResult) -> bool:
        return isinstance(result, LoggedUser) and result.user in self.users

    def __repr__(self):
        return f"OnlyUsers({', '.join(repr(u) for u in sorted(self.users))})"
