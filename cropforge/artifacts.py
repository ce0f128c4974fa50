"""In-memory store for produced files, addressed by opaque locators."""

import threading
import uuid


class ArtifactStore:
    """Holds output bytes until their locator is released."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: dict[str, bytes] = {}

    def mint(self, data: bytes) -> str:
        locator = uuid.uuid4().hex[:12]
        with self._lock:
            self._items[locator] = data
        return locator

    def read(self, locator: str) -> bytes:
        """Return the bytes behind ``locator``; KeyError once released."""
        with self._lock:
            return self._items[locator]

    def release(self, locator: str) -> None:
        with self._lock:
            self._items.pop(locator, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __contains__(self, locator: object) -> bool:
        with self._lock:
            return locator in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
