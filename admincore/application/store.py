"""In-memory cache of the loaded page, its total and the latest metrics."""
from __future__ import annotations

import math
from typing import Any, Callable, Iterable, Mapping

from admincore.domain import MetricsSnapshot, Query, Record

StoreListener = Callable[["OptimisticStateStore"], None]


class OptimisticStateStore:
    """Read/write cache shared by the controller, executor and retrier.

    Every mutation happens in one synchronous call after the corresponding
    await has resolved, so readers never observe a half-applied change.
    """

    def __init__(self, page_size: int = 10) -> None:
        self.page_size = page_size
        self._records: dict[str, Record] = {}
        self._total = 0
        self._query: Query | None = None
        self._metrics: MetricsSnapshot | None = None
        self._version = 0
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # read side
    # ------------------------------------------------------------------
    @property
    def items(self) -> list[Record]:
        return list(self._records.values())

    @property
    def page_ids(self) -> list[str]:
        return list(self._records)

    @property
    def total(self) -> int:
        return self._total

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self._total / self.page_size))

    @property
    def query(self) -> Query | None:
        return self._query

    @property
    def metrics(self) -> MetricsSnapshot | None:
        return self._metrics

    @property
    def version(self) -> int:
        return self._version

    def get(self, record_id: str) -> Record | None:
        return self._records.get(record_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # write side
    # ------------------------------------------------------------------
    def _changed(self) -> None:
        self._version += 1
        for listener in list(self._listeners):
            listener(self)

    def commit(self, items: Iterable[Record], total: int, query: Query | None = None) -> None:
        records = {record.id: record for record in items}
        self._records = records
        self._total = max(int(total), len(records))
        if query is not None:
            self._query = query
            self.page_size = query.page_size
        self._changed()

    def patch(self, record_id: str, changes: Mapping[str, Any]) -> Record | None:
        record = self._records.get(record_id)
        if record is None:
            return None
        updated = record.patched(changes)
        self._records[record_id] = updated
        self._changed()
        return updated

    def patch_many(self, record_ids: Iterable[str], changes: Mapping[str, Any]) -> list[str]:
        patched: list[str] = []
        for record_id in record_ids:
            record = self._records.get(record_id)
            if record is None:
                continue
            self._records[record_id] = record.patched(changes)
            patched.append(record_id)
        if patched:
            self._changed()
        return patched

    def replace(self, record: Record) -> bool:
        if record.id not in self._records:
            return False
        self._records[record.id] = record
        self._changed()
        return True

    def remove(self, record_ids: Iterable[str], *, total_removed: int | None = None) -> list[str]:
        """Drop cached records and shrink the total.

        ``total_removed`` covers targets that were deleted remotely but are
        not resident on the current page.
        """

        removed = [record_id for record_id in dict.fromkeys(record_ids) if self._records.pop(record_id, None) is not None]
        decrement = len(removed) if total_removed is None else max(total_removed, len(removed))
        if decrement:
            self._total = max(len(self._records), self._total - decrement)
        if removed or decrement:
            self._changed()
        return removed

    def commit_metrics(self, snapshot: MetricsSnapshot) -> None:
        self._metrics = snapshot
        self._changed()

    def clear(self) -> None:
        self._records = {}
        self._total = 0
        self._query = None
        self._metrics = None
        self._changed()
