"""Debounced, generation-tagged list fetching."""
from __future__ import annotations

import asyncio
import math
from dataclasses import replace
from typing import Any, Callable

from admincore.application.session import SessionGuard
from admincore.application.store import OptimisticStateStore
from admincore.core.errors import AdminError
from admincore.domain import ListPage, Query, SortOrder
from admincore.infrastructure.collaborators import ListFetch
from admincore.utils.logger import get_logger

logger = get_logger(__name__)

CommitListener = Callable[[ListPage], None]
ErrorListener = Callable[[AdminError], None]

PATCHABLE_FIELDS = frozenset({"page", "sort_field", "sort_order", "filters", "search"})


class QueryController:
    """Owns the current :class:`Query` of a view and feeds the store.

    Patches arriving within ``debounce_seconds`` of each other collapse into
    a single fetch. Every fetch carries a generation number and only the
    newest generation may commit, whatever order the responses arrive in.
    """

    def __init__(
        self,
        list_fetch: ListFetch,
        store: OptimisticStateStore,
        *,
        query: Query | None = None,
        debounce_seconds: float = 0.5,
        session: SessionGuard | None = None,
    ) -> None:
        self._fetch = list_fetch
        self._store = store
        self._query = query or Query(page_size=store.page_size)
        self._debounce = debounce_seconds
        self._session = session or SessionGuard()
        self._generation = 0
        self._pending: asyncio.Task[None] | None = None
        self._commit_listeners: list[CommitListener] = []
        self._error_listeners: list[ErrorListener] = []
        self.error: AdminError | None = None
        self.loading = False

    @property
    def query(self) -> Query:
        return self._query

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def on_commit(self, listener: CommitListener) -> None:
        self._commit_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    # ------------------------------------------------------------------
    # query patches
    # ------------------------------------------------------------------
    def _merge(self, patch: dict[str, Any]) -> Query:
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise TypeError(f"unsupported query fields: {', '.join(sorted(unknown))}")

        current = self._query
        changes: dict[str, Any] = {}
        if "filters" in patch:
            filters = dict(current.filters)
            for key, value in (patch["filters"] or {}).items():
                if value in (None, ""):
                    filters.pop(key, None)
                else:
                    filters[key] = value
            changes["filters"] = filters
        if "search" in patch:
            changes["search"] = patch["search"] or ""
        if "sort_field" in patch:
            changes["sort_field"] = patch["sort_field"] or None
        if "sort_order" in patch:
            changes["sort_order"] = SortOrder(patch["sort_order"])

        merged = replace(current, **changes)
        if any(getattr(merged, name) != getattr(current, name) for name in changes):
            # Anything but explicit navigation starts over from the first page.
            return replace(merged, page=1)
        if "page" in patch:
            return replace(merged, page=int(patch["page"]))
        return merged

    def update(self, **patch: Any) -> Query:
        """Merge ``patch`` into the current query and schedule a debounced fetch."""

        query = self._merge(patch)
        if query == self._query:
            return query
        self._query = query
        self._schedule()
        return query

    def go_to_page(self, page: int) -> Query:
        return self.update(page=page)

    def toggle_sort(self, field: str) -> Query:
        if field == self._query.sort_field:
            return self.update(sort_order=self._query.sort_order.flipped())
        return self.update(sort_field=field, sort_order=SortOrder.ASC)

    # ------------------------------------------------------------------
    # debounce
    # ------------------------------------------------------------------
    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _schedule(self) -> None:
        self._cancel_pending()
        self._pending = asyncio.get_running_loop().create_task(self._debounced_refresh())

    async def _debounced_refresh(self) -> None:
        await asyncio.sleep(self._debounce)
        self._pending = None
        await self.refresh()

    async def flush(self) -> ListPage | None:
        """Fire the pending fetch now instead of waiting for the window to close."""

        if self._pending is None:
            return None
        self._cancel_pending()
        return await self.refresh()

    async def wait_idle(self) -> None:
        while self._pending is not None:
            await asyncio.wait({self._pending})

    def close(self) -> None:
        self._cancel_pending()
        # Anything still in flight now belongs to a superseded generation.
        self._generation += 1

    # ------------------------------------------------------------------
    # fetch
    # ------------------------------------------------------------------
    async def refresh(self) -> ListPage | None:
        """Fetch the current query; returns the committed page or ``None``."""

        self._generation += 1
        generation = self._generation
        query = self._query
        self.loading = True
        try:
            page = await self._fetch(query)
        except AdminError as exc:
            self._session.check(exc)
            if generation != self._generation:
                logger.debug("Ignoring failure of superseded fetch generation %s", generation)
                return None
            self.loading = False
            self.error = exc
            logger.warning("Fetching page %s failed: %s", query.page, exc.message)
            for listener in list(self._error_listeners):
                listener(exc)
            return None

        if generation != self._generation:
            logger.debug("Discarding stale page for generation %s (current %s)", generation, self._generation)
            return None

        if len(page.items) > query.page_size:
            logger.warning("Backend returned %s items for a page of %s", len(page.items), query.page_size)
            page = ListPage(items=page.items[: query.page_size], total=page.total)

        self.loading = False
        self.error = None
        self._store.commit(page.items, page.total, query)
        for listener in list(self._commit_listeners):
            listener(page)

        if not page.items and query.page > 1 and page.total > 0:
            last_page = max(1, math.ceil(page.total / query.page_size))
            if last_page < query.page:
                self.update(page=last_page)
        return page
