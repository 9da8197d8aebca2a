"""Error taxonomy.

Header and credential errors describe a rejected request and are folded into
an ``Outcome`` by the gate. Store errors only happen while loading a
credential file and are raised to whoever builds the store.
"""

from __future__ import annotations


class HtpasswdGateError(Exception):
    """Base class for every error raised by this package."""

    @property
    def kind(self) -> str:
        return type(self).__name__


# Request-time errors


class AuthenticationError(HtpasswdGateError):
    """The request could not be authenticated (maps to 401)."""


class HeaderError(AuthenticationError):
    """The Authorization header is syntactically invalid."""


class HeaderTooShort(HeaderError):
    def __init__(self):
        super().__init__("Authorization header not long enough to contain basic auth info")


class HeaderNotText(HeaderError):
    def __init__(self):
        super().__init__("Authorization header cannot be converted to string")


class MissingScheme(HeaderError):
    def __init__(self):
        super().__init__("Authentication scheme is missing")


class UnsupportedScheme(HeaderError):
    def __init__(self, scheme: str):
        super().__init__(f'Unsupported authentication scheme: expected "Basic", got "{scheme}"')
        self.scheme = scheme


class MalformedCredentials(HeaderError):
    def __init__(self):
        super().__init__("Encoded credentials are not valid base64")


class CannotExtractPassword(HeaderError):
    def __init__(self):
        super().__init__("Cannot extract password from credentials")


class EmptyPassword(HeaderError):
    def __init__(self):
        super().__init__("Empty password isn't allowed")


class InvalidCredentials(AuthenticationError):
    """Well-formed header, but the user/password pair did not match.

    The message is the same for unknown users and wrong passwords.
    """

    def __init__(self):
        super().__init__("Unknown user or invalid password")


# Store-load errors


class StoreError(HtpasswdGateError):
    """The credential store could not be built."""


class CannotOpenFile(StoreError):
    def __init__(self, path: str, cause: OSError):
        super().__init__(f'Cannot open htpasswd file "{path}": {cause}')
        self.path = path
        self.cause = cause


class CannotReadFile(StoreError):
    def __init__(self, path: str, cause: Exception):
        super().__init__(f'Cannot read htpasswd file "{path}": {cause}')
        self.path = path
        self.cause = cause


def _where(path: str | None, line: int) -> str:
    if path is None:
        return f"at line {line}"
    return f'in htpasswd file "{path}" at line {line}'


class MalformedLine(StoreError):
    def __init__(self, line: int, path: str | None = None):
        super().__init__(f"Invalid htpasswd line {_where(path, line)}")
        self.line = line
        self.path = path


class InvalidPasswordEncoding(StoreError):
    def __init__(self, line: int, path: str | None = None):
        super().__init__(f"Invalid base64 string for password {_where(path, line)}")
        self.line = line
        self.path = path


class DuplicateUser(StoreError):
    def __init__(self, user: str, line: int | None = None, path: str | None = None):
        message = f'Duplicate user "{user}"'
        if line is not None:
            message = f"{message} {_where(path, line)}"
        super().__init__(message)
        self.user = user
        self.line = line
        self.path = path
