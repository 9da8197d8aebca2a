"""Parsing of ``Authorization: Basic`` header values (RFC 7617)."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

from htpasswd_gate.errors import (
    CannotExtractPassword,
    EmptyPassword,
    HeaderNotText,
    HeaderTooShort,
    MalformedCredentials,
    MissingScheme,
    UnsupportedScheme,
)

BASIC_SCHEME = "Basic"

# len("Basic ") plus at least one base64 character
MIN_HEADER_LENGTH = 7


@dataclass(frozen=True)
class RawCredentials:
    user: str
    password: str

    def __repr__(self):
        return f"RawCredentials(user={self.user!r}, password='***')"


def _header_bytes(header_value: bytes | str) -> bytes:
    if isinstance(header_value, bytes):
        return header_value
    # ASGI servers decode header bytes as latin-1. Anything outside it is
    # measured as UTF-8 and then fails the text check.
    try:
        return header_value.encode("latin-1")
    except UnicodeEncodeError:
        return header_value.encode("utf-8")


def _is_header_text(raw: bytes) -> bool:
    return all(b == 0x09 or 0x20 <= b < 0x7F for b in raw)


def parse_authorization(header_value: bytes | str | None) -> RawCredentials | None:
    """Extract the user/password pair from an Authorization header value.

    Returns ``None`` when no header was sent. Raises a ``HeaderError`` subclass
    describing the first problem found otherwise.
    """
    if header_value is None:
        return None

    raw = _header_bytes(header_value)
    if len(raw) < MIN_HEADER_LENGTH:
        raise HeaderTooShort()
    if not _is_header_text(raw):
        raise HeaderNotText()
    text = raw.decode("ascii")

    scheme, sep, param = text.partition(" ")
    if not sep:
        raise MissingScheme()
    if scheme != BASIC_SCHEME:
        raise UnsupportedScheme(scheme)

    try:
        decoded = base64.b64decode(param, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedCredentials() from None
    user_password = decoded.decode("utf-8", errors="replace")

    user, sep, password = user_password.partition(":")
    if not sep:
        raise CannotExtractPassword()
    if not password:
        raise EmptyPassword()

    return RawCredentials(user=user, password=password)
