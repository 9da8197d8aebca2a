"""HTTP Basic auth against htpasswd files, with per-resource authorization policies"""

from htpasswd_gate.gate import Allowed, Forbidden, Unauthorized, authorize
from htpasswd_gate.policy import AnyLoggedUser, Anyone, Anonymous, LoggedUser
from htpasswd_gate.store import HtpasswdStore, StoreHandle

__all__ = [
    "HtpasswdStore",
    "StoreHandle",
    "authorize",
    "Allowed",
    "Unauthorized",
    "Forbidden",
    "Anonymous",
    "LoggedUser",
    "Anyone",
    "AnyLoggedUser",
]
