"""Link-based duplicate check against the case store."""

from __future__ import annotations

from typing import Protocol


class CaseLookup(Protocol):
    def exists(self, link: str) -> bool: ...


class Deduplicator:
    """Read-only "have we stored this link?" check.

    This is not a reservation: two runs can both see a link as new. The store's
    insert is insert-if-absent on the same key, so the loser simply gets a
    False back from insert_case.
    """

    def __init__(self, store: CaseLookup):
        self.store = store

    def is_duplicate(self, link: str) -> bool:
        return bool(self.store.exists(link))
