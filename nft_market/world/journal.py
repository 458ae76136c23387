"""Undo journal for World invocations

Before a mutation touches a dict key or an object attribute it records
the prior value here. A failed invocation replays the journal in reverse;
a committed one just drops it. Cost is proportional to what the call
touched, never to the size of the world.

Usage:
    journal.begin()
    journal.record(ledger.balances, address)   # before changing it
    journal.record_attr(item, "sold")
    ...
    journal.commit()   # or journal.rollback()
"""

from __future__ import annotations

from typing import Any, MutableMapping

# Prior value for keys that did not exist (rollback deletes them)
_MISSING: Any = object()


class Journal:
    """Per-invocation undo log.

    Recording is a no-op while no invocation is open, so setup done
    outside World.invoke (accounts, deployments) is never journaled.
    """

    _entries: list[tuple[bool, Any, Any, Any]] | None

    def __init__(self) -> None:
        self._entries = None

    @property
    def active(self) -> bool:
        """Whether an invocation is open."""
        return self._entries is not None

    def begin(self) -> None:
        if self._entries is not None:
            raise RuntimeError("journal already open")
        self._entries = []

    def record(self, mapping: MutableMapping[Any, Any], key: Any) -> None:
        """Remember mapping[key] (or its absence)."""
        if self._entries is not None:
            self._entries.append((False, mapping, key, mapping.get(key, _MISSING)))

    def record_attr(self, obj: object, name: str) -> None:
        """Remember obj.name."""
        if self._entries is not None:
            self._entries.append((True, obj, name, getattr(obj, name)))

    def commit(self) -> int:
        """Keep all changes. Returns the number of entries dropped."""
        count = len(self._entries or [])
        self._entries = None
        return count

    def rollback(self) -> int:
        """Undo every recorded change, newest first. Returns the entry count."""
        entries = self._entries or []
        self._entries = None
        for is_attr, target, key, old in reversed(entries):
            if is_attr:
                setattr(target, key, old)
            elif old is _MISSING:
                target.pop(key, None)
            else:
                target[key] = old
        return len(entries)
