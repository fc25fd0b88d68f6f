"""In-memory TTL cache for valuation snapshots keyed by (account, date)."""

from __future__ import annotations

import time
from datetime import date

from portfolio_core.models.valuation import ValuationSnapshot

SnapshotKey = tuple[str | None, date]


class SnapshotCache:
    """Thread-unsafe dict + monotonic clock TTL cache.

    Snapshots are deterministic for a fixed ledger and price set, so entries
    only go stale when the underlying data changes; writers call
    :meth:`clear` after mutating the ledger or prices.
    """

    def __init__(self, ttl_seconds: float = 300.0) -> None:
        self._ttl = ttl_seconds
        self._store: dict[SnapshotKey, tuple[float, ValuationSnapshot]] = {}
        self.hits = 0
        self.misses = 0

    def get(self, account_id: str | None, as_of: date) -> ValuationSnapshot | None:
        """Return cached snapshot or ``None`` if missing / expired."""
        key = (account_id, as_of)
        entry = self._store.get(key)
        if entry is None:
            self.misses += 1
            return None
        ts, snapshot = entry
        if time.monotonic() - ts > self._ttl:
            del self._store[key]
            self.misses += 1
            return None
        self.hits += 1
        return snapshot

    def set(self, account_id: str | None, as_of: date, snapshot: ValuationSnapshot) -> None:
        self._store[(account_id, as_of)] = (time.monotonic(), snapshot)

    def invalidate(self, account_id: str | None, as_of: date) -> None:
        """Remove a single entry (no-op if absent)."""
        self._store.pop((account_id, as_of), None)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
