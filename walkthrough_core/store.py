"""
Element store: the live mapping from element key to render handle(s).

Every entry is exclusively owned by the step that inserted it. Removing an
entry disposes its render resources through the renderer, recursively for
composite handles and lists of handles.

Keys whose geometry could not be constructed are recorded as *skipped*; a
skipped key counts as settled for idempotency checks and is cleared by the
same teardown that would have removed the element.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Set, Union

from .errors import DuplicateKeyError
from .renderer import Handle, Renderer, describe_handle

logger = logging.getLogger(__name__)

Entry = Union[Handle, List[Handle]]


class ElementStore:
    """Mapping of element key -> Handle | list[Handle] for one walkthrough session."""

    def __init__(self, renderer: Renderer):
        self.renderer = renderer
        self._entries: Dict[str, Entry] = {}
        self._owners: Dict[str, int] = {}
        self._skipped: Dict[str, int] = {}

    # ----- mutation -----
    def put(self, key: str, handle: Entry, owner: int | None = None) -> None:
        """Insert `handle` under `key`.

        Raises:
            DuplicateKeyError: if `key` is already present or marked skipped
        """
        if key in self._entries or key in self._skipped:
            raise DuplicateKeyError(key, self._owners.get(key, self._skipped.get(key)))
        self._entries[key] = handle
        if owner is not None:
            self._owners[key] = owner

    def mark_skipped(self, key: str, owner: int | None = None) -> None:
        """Record that `key` was intentionally not created (unsatisfiable geometry)."""
        if key in self._entries or key in self._skipped:
            raise DuplicateKeyError(key, self._owners.get(key, self._skipped.get(key)))
        self._skipped[key] = owner if owner is not None else 0

    def remove(self, key: str) -> bool:
        """Dispose and delete `key`. Returns False if it was absent (no-op)."""
        if key in self._skipped:
            del self._skipped[key]
            return True
        entry = self._entries.pop(key, None)
        self._owners.pop(key, None)
        if entry is None:
            logger.debug("Element %r not present; nothing to remove", key)
            return False
        self._dispose(entry)
        return True

    def clear(self) -> int:
        """Dispose and remove every entry. Returns the number of keys removed."""
        keys = list(self._entries) + list(self._skipped)
        for key in reversed(keys):
            self.remove(key)
        return len(keys)

    def _dispose(self, entry: Entry) -> None:
        if isinstance(entry, (list, tuple)):
            for h in entry:
                self._dispose(h)
        else:
            self.renderer.dispose_element(entry)

    # ----- queries -----
    def get(self, key: str) -> Optional[Entry]:
        return self._entries.get(key)

    def is_skipped(self, key: str) -> bool:
        return key in self._skipped

    def is_settled(self, key: str) -> bool:
        """True when `key` is present or recorded as skipped."""
        return key in self._entries or key in self._skipped

    def owner(self, key: str) -> int | None:
        if key in self._skipped:
            return self._skipped[key]
        return self._owners.get(key)

    def keys(self) -> Set[str]:
        return set(self._entries)

    def skipped(self) -> Set[str]:
        return set(self._skipped)

    def handles(self, key: str) -> List[Handle]:
        entry = self._entries.get(key)
        if entry is None:
            return []
        if isinstance(entry, (list, tuple)):
            return list(entry)
        return [entry]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def summary(self) -> Dict[str, dict]:
        """JSON-friendly view of the store used by snapshots."""
        out: Dict[str, dict] = {}
        for key, entry in self._entries.items():
            handles = entry if isinstance(entry, (list, tuple)) else [entry]
            out[key] = {
                "owner": self._owners.get(key),
                "handles": [describe_handle(h) for h in handles],
            }
        for key, owner in self._skipped.items():
            out[key] = {"owner": owner, "skipped": True, "handles": []}
        return out
