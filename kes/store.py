"""A caching secret store in front of a remote key-value store."""

from __future__ import annotations

import abc
import threading
from typing import Iterator

from .cache import SecretCache
from .secret import Secret, parse_secret

MAX_SIZE = 1 << 20
"""The largest secret, in bytes, a remote store should read."""


class KeyNotFoundError(KeyError):
    """No entry exists for the requested key."""

    def __init__(self, message: str = "key does not exist") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class KeyExistsError(Exception):
    """An entry for the key already exists."""

    def __init__(self, message: str = "key does already exist") -> None:
        super().__init__(message)


class Remote(abc.ABC):
    """A key-value store for secrets, such as a vault backend.

    Implementations must store values securely and protect their network
    communication.
    """

    @abc.abstractmethod
    def create(self, key: str, value: str) -> None:
        """Store the pair unless ``key`` exists; raise :class:`KeyExistsError` if it does."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Delete the entry for ``key``, if any."""

    @abc.abstractmethod
    def get(self, key: str) -> str:
        """Return the value for ``key``; raise :class:`KeyNotFoundError` if absent."""

    @abc.abstractmethod
    def list(self) -> Iterator[str]:
        """Iterate over the names of all stored keys."""


class SecretStore:
    """Caches secrets and reads or writes them through a :class:`Remote`."""

    def __init__(self, remote: Remote) -> None:
        self.remote = remote
        self._cache = SecretCache()
        self._gc_lock = threading.Lock()
        self._gc_started = False

    def create(self, name: str, secret: Secret) -> None:
        """Store ``secret`` under ``name``; raise :class:`KeyExistsError` if it exists."""
        self.remote.create(name, str(secret))
        self._cache.set_or_get(name, secret)

    def delete(self, name: str) -> None:
        """Delete the secret stored under ``name``, if any."""
        self._cache.delete(name)
        self.remote.delete(name)

    def get(self, name: str) -> Secret:
        """Return the secret for ``name``; raise :class:`KeyNotFoundError` if absent."""
        secret = self._cache.get(name)
        if secret is not None:
            return secret
        secret = parse_secret(self.remote.get(name))
        return self._cache.set_or_get(name, secret)

    def list(self) -> Iterator[str]:
        """Iterate over all key names as the remote store provides them."""
        return self.remote.list()

    def start_gc(
        self, expiry: float, unused_expiry: float, stop: threading.Event
    ) -> None:
        """Start expiring cached secrets in the background, once.

        All cached secrets are dropped every ``expiry`` seconds, and those
        unused for ``unused_expiry`` seconds are dropped as well. A zero
        value turns the matching collection off. Later calls do nothing.
        """
        with self._gc_lock:
            if self._gc_started:
                return
            self._gc_started = True
        self._cache.start_gc(expiry, stop)
        self._cache.start_unused_gc(unused_expiry / 2, stop)