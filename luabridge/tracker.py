"""
Cycle tracking for a single top-level conversion.

A CycleTracker maps the identity of a composite to the value already
produced for it, so shared and self-referential structures convert to
shared and self-referential results instead of recursing forever.

Each top-level conversion opens its own tracker and closes it on every
exit path:

    with CycleTracker(id) as visited:
        ...

Trackers are never shared between directions or between calls.
"""

from typing import Any, Callable, Dict, Hashable, Optional, Tuple

MISSING = object()


class CycleTracker:
    """Identity -> produced value map, valid for one conversion.

    Args:
        identity: Maps a tracked object to a hashable identity. id() for
            Python objects; the Lua VM's table identity for Lua tables.
        anchor: Object kept alive for the tracker's lifetime (e.g. the Lua
            table backing the identity lookup); released by close().
    """

    def __init__(self, identity: Callable[[Any], Hashable] = id, anchor: Any = None):
        self._identity = identity
        self._anchor = anchor
        # identity -> (source object, produced value); the source is held so
        # its id() cannot be reused while the tracker is open
        self._seen: Dict[Hashable, Tuple[Any, Any]] = {}
        self._closed = False

    def mark(self, source: Any, produced: Any) -> None:
        """Record that `source` converts to `produced`."""
        self._check_open()
        self._seen[self._identity(source)] = (source, produced)

    def lookup(self, source: Any) -> Any:
        """Return the value produced earlier for `source`, or MISSING."""
        self._check_open()
        entry = self._seen.get(self._identity(source))
        if entry is None:
            return MISSING
        return entry[1]

    def __len__(self) -> int:
        return len(self._seen)

    @property
    def anchor(self) -> Optional[Any]:
        return self._anchor

    def close(self) -> None:
        """Drop all entries and release the anchor."""
        self._seen.clear()
        self._anchor = None
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("CycleTracker used after close()")

    def __enter__(self) -> 'CycleTracker':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
