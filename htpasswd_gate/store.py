"""Credential store backed by an Apache htpasswd file.

Only the legacy ``{SHA}`` scheme is understood: each record reads
``<username>:{SHA}<base64(sha1(password))>``. Any other scheme marker does not
split into exactly two parts and is reported as a malformed line.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import secrets
import threading
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from htpasswd_gate.errors import (
    CannotOpenFile,
    CannotReadFile,
    DuplicateUser,
    InvalidPasswordEncoding,
    MalformedLine,
)

logger = logging.getLogger(__name__)

SHA_SEPARATOR = ":{SHA}"

# Compared against when the user is unknown, so both rejection paths do the same work.
_PLACEHOLDER_DIGEST = bytes(hashlib.sha1().digest_size)


def sha1_digest(password: str) -> bytes:
    """Raw 20-byte SHA-1 digest of the UTF-8 encoded password."""
    return hashlib.sha1(password.encode("utf-8")).digest()


def htpasswd_line(user: str, password: str) -> str:
    """Format one ``{SHA}`` htpasswd record."""
    encoded = base64.b64encode(sha1_digest(password)).decode("ascii")
    return f"{user}{SHA_SEPARATOR}{encoded}"


def _read_lines(handle: TextIO, path: str) -> Iterator[str]:
    try:
        for line in handle:
            yield line
    except (OSError, UnicodeDecodeError) as e:
        raise CannotReadFile(path, e) from e


class HtpasswdStore:
    """Registered users and their SHA-1 password digests.

    Once built and handed to request handlers the store is only read, so it
    can be shared between threads without locking. ``add`` exists for
    programmatic construction and must not be called after that point.
    """

    def __init__(self):
        self._users: dict[str, bytes] = {}

    @classmethod
    def from_lines(cls, lines: Iterable[str], path: str | None = None) -> HtpasswdStore:
        """Build a store from htpasswd records.

        Blank lines are skipped but still counted: line numbers in errors are
        0-indexed over the original input. The first bad line aborts the build.
        """
        store = cls()
        for index, raw_line in enumerate(lines):
            line = raw_line.strip()
            if not line:
                continue

            parts = line.split(SHA_SEPARATOR)
            if len(parts) != 2:
                raise MalformedLine(index, path)
            user, encoded_digest = parts

            try:
                digest = base64.b64decode(encoded_digest, validate=True)
            except (binascii.Error, ValueError):
                raise InvalidPasswordEncoding(index, path) from None

            if user in store._users:
                raise DuplicateUser(user, line=index, path=path)
            store._users[user] = digest
        return store

    @classmethod
    def from_text(cls, content: str, path: str | None = None) -> HtpasswdStore:
        return cls.from_lines(content.split("\n"), path=path)

    @classmethod
    def from_path(cls, path: str | Path) -> HtpasswdStore:
        """Load a store from an htpasswd file on disk."""
        path_string = str(path)
        try:
            # Only "\n" ends a record; strip() drops the "\r" of CRLF files.
            handle = open(path, encoding="utf-8", newline="\n")
        except OSError as e:
            raise CannotOpenFile(path_string, e) from e

        with handle:
            store = cls.from_lines(_read_lines(handle, path_string), path=path_string)
        logger.info(f"Loaded {len(store)} users from htpasswd file {path_string}")
        return store

    def add(self, user: str, digest: bytes) -> None:
        """Register a user with an already computed SHA-1 digest."""
        if user in self._users:
            raise DuplicateUser(user)
        self._users[user] = bytes(digest)

    def is_valid(self, user: str, password: str) -> bool:
        """Check a plaintext password against the stored digest.

        Unknown users and wrong passwords are indistinguishable to the caller.
        """
        candidate = sha1_digest(password)
        stored = self._users.get(user)
        if stored is None:
            secrets.compare_digest(candidate, _PLACEHOLDER_DIGEST)
            return False
        return secrets.compare_digest(candidate, stored)

    def digest_for(self, user: str) -> bytes | None:
        return self._users.get(user)

    def usernames(self) -> list[str]:
        return sorted(self._users)

    def __contains__(self, user: object) -> bool:
        return user in self._users

    def __len__(self) -> int:
        return len(self._users)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HtpasswdStore):
            return NotImplemented
        return self._users == other._users

    def __repr__(self):
        return f"<HtpasswdStore(users={len(self._users)})>"


class StoreHandle:
    """Holds the store currently served to requests.

    Readers take ``current`` once per request and keep that snapshot until
    they finish. ``reload`` builds a complete new store before swapping the
    reference, so no reader ever sees a partially loaded store.
    """

    def __init__(self, store: HtpasswdStore, path: str | Path | None = None):
        self._store = store
        self.path = str(path) if path is not None else None
        self._reload_lock = threading.Lock()

    @classmethod
    def from_path(cls, path: str | Path) -> StoreHandle:
        return cls(HtpasswdStore.from_path(path), path=path)

    @property
    def current(self) -> HtpasswdStore:
        return self._store

    def swap(self, store: HtpasswdStore) -> HtpasswdStore:
        """Replace the served store, returning the previous one."""
        with self._reload_lock:
            previous, self._store = self._store, store
        return previous

    def reload(self) -> HtpasswdStore:
        """Rebuild the store from ``path`` and swap it in.

        On failure the current store stays in place and the ``StoreError``
        propagates.
        """
        if self.path is None:
            raise RuntimeError("StoreHandle has no htpasswd path to reload from")

        with self._reload_lock:
            try:
                store = HtpasswdStore.from_path(self.path)
            except Exception as e:
                logger.error(f"Reload of {self.path} failed, keeping previous store: {e}")
                raise
            self._store = store
        logger.info(f"Reloaded htpasswd store from {self.path}")
        return store
