"""Credential key pool with serialized rotation."""

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiKey:
    """A named credential. ``repr`` never shows the secret."""

    name: str
    value: str

    def __repr__(self) -> str:
        return f"ApiKey(name={self.name!r})"

    @property
    def masked(self) -> str:
        if len(self.value) <= 8:
            return "****"
        return f"{self.value[:4]}...{self.value[-4:]}"


class KeyPool:
    """
    Ordered credential keys shared by all analysis workers.

    ``acquire`` hands out the current key, skipping any the caller has
    already exhausted. ``rotate`` advances the cursor only if the failed key
    is still current, so concurrent failures on the same key rotate once.
    """

    def __init__(self, keys: Iterable[ApiKey]):
        self._keys = list(keys)
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_values(cls, values: Iterable[str]) -> "KeyPool":
        keys = [v.strip() for v in values if v and v.strip()]
        return cls(ApiKey(name=f"key-{i + 1}", value=v) for i, v in enumerate(keys))

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def keys(self) -> list[ApiKey]:
        return list(self._keys)

    @property
    def current(self) -> Optional[ApiKey]:
        with self._lock:
            return self._keys[self._index] if self._keys else None

    def acquire(self, exclude: Optional[set[str]] = None) -> Optional[ApiKey]:
        """
        Return the first usable key starting at the cursor.

        Args:
            exclude: Names of keys the caller must not use

        Returns:
            A key, or None if every key is excluded
        """
        exclude = exclude or set()
        with self._lock:
            count = len(self._keys)
            for offset in range(count):
                key = self._keys[(self._index + offset) % count]
                if key.name not in exclude:
                    return key
        return None

    def rotate(self, failed: ApiKey) -> None:
        """Advance past ``failed`` if it is still the current key."""
        with self._lock:
            if not self._keys:
                return
            if self._keys[self._index].name == failed.name:
                self._index = (self._index + 1) % len(self._keys)
                logger.info(
                    "Rotated analysis key %s -> %s", failed.name, self._keys[self._index].name
                )
