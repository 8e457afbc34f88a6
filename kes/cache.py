"""An in-memory, thread-safe cache of secrets with background expiry."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from .secret import Secret


@dataclass
class _Entry:
    secret: Secret
    used: bool = True


class SecretCache:
    """Maps names to secrets and remembers whether each was used recently."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._store: dict[str, _Entry] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def set(self, name: str, secret: Secret) -> None:
        """Add ``secret`` under ``name``, replacing any existing entry."""
        with self._lock:
            self._store[name] = _Entry(secret)

    def set_or_get(self, name: str, secret: Secret) -> Secret:
        """Add ``secret`` unless ``name`` is cached; return the cached secret."""
        with self._lock:
            entry = self._store.get(name)
            if entry is not None:
                entry.used = True
                return entry.secret
            self._store[name] = _Entry(secret)
            return secret

    def get(self, name: str) -> Secret | None:
        """Return the secret cached under ``name``, or ``None``."""
        with self._lock:
            entry = self._store.get(name)
            if entry is None:
                return None
            entry.used = True
            return entry.secret

    def delete(self, name: str) -> None:
        """Remove the entry for ``name``, if any."""
        with self._lock:
            self._store.pop(name, None)

    def clear_unused(self) -> None:
        """Drop entries not used since the last call and mark the rest unused."""
        with self._lock:
            stale = [name for name, entry in self._store.items() if not entry.used]
            for entry in self._store.values():
                entry.used = False
            for name in stale:
                del self._store[name]

    def _clear(self) -> None:
        with self._lock:
            self._store = {}

    def start_gc(self, interval: float, stop: threading.Event) -> threading.Thread | None:
        """Empty the cache every ``interval`` seconds until ``stop`` is set.

        Does nothing and returns ``None`` if ``interval`` is zero.
        """
        return _repeat(interval, stop, self._clear)

    def start_unused_gc(
        self, interval: float, stop: threading.Event
    ) -> threading.Thread | None:
        """Call :meth:`clear_unused` every ``interval`` seconds until ``stop`` is set.

        An unused entry survives between one and two intervals. Does nothing
        and returns ``None`` if ``interval`` is zero.
        """
        return _repeat(interval, stop, self.clear_unused)


def _repeat(
    interval: float, stop: threading.Event, action: Callable[[], None]
) -> threading.Thread | None:
    if not interval:
        return None

    def loop() -> None:
        while not stop.wait(interval):
            action()

    thread = threading.Thread(target=loop, name="secret-cache-gc", daemon=True)
    thread.start()
    return thread