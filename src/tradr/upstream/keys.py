"""Rotating API key pool shared by every request against one upstream.

A pool lives for the whole process and is passed explicitly to each fetch,
so tests can inject deterministic pools. The rotation cursor is the only
shared mutable state between concurrent analyses; it is guarded by a
threading.Lock so it is safe from both the event loop and worker threads.
"""

import threading
from collections.abc import Iterable

from pydantic import SecretStr


class ApiKeyPool:
    """Named round-robin pool of API credentials.

    The cursor is always in ``[0, size)`` and moves only through
    rotate_from(), which callers invoke after observing a rate-limit
    response for a specific key.

    Args:
        name: Pool label used in logs and errors (e.g. "primary").
        keys: Credential strings. SecretStr values are unwrapped.
    """

    def __init__(self, name: str, keys: Iterable[str | SecretStr]) -> None:
        unwrapped = tuple(
            k.get_secret_value() if isinstance(k, SecretStr) else k for k in keys
        )
        if not unwrapped:
            raise ValueError(f"API key pool '{name}' has no keys configured")
        self._name = name
        self._keys = unwrapped
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def size(self) -> int:
        return len(self._keys)

    @property
    def cursor(self) -> int:
        with self._lock:
            return self._cursor

    def current(self) -> tuple[int, str]:
        """Return ``(index, key)`` for the key currently in use."""
        with self._lock:
            return self._cursor, self._keys[self._cursor]

    def rotate_from(self, observed_index: int) -> tuple[int, str]:
        """Advance past ``observed_index`` and return the new current key.

        Compare-and-swap: the cursor only moves if it still points at the
        key the caller saw rate-limited. If another caller already rotated
        away from it, the cursor is left alone and the (already newer)
        current key is returned, so concurrent failures on the same key
        advance the pool exactly once.
        """
        with self._lock:
            if self._cursor == observed_index:
                self._cursor = (self._cursor + 1) % len(self._keys)
            return self._cursor, self._keys[self._cursor]

    def __repr__(self) -> str:
        return f"ApiKeyPool(name={self._name!r}, size={len(self._keys)})"
