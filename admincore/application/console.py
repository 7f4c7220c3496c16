"""Session-scoped facade over one administered resource view."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Iterable

from admincore.application.bulk import BulkActionExecutor
from admincore.application.field_update import FieldUpdateRetrier
from admincore.application.metrics import MetricsAggregator, MetricsProfile
from admincore.application.query import QueryController
from admincore.application.selection import SelectionSet
from admincore.application.session import SessionGuard
from admincore.application.store import OptimisticStateStore
from admincore.core.encodings import CandidateTable
from admincore.core.errors import UnsupportedOperationError
from admincore.core.resources import ResourceSpec
from admincore.core.settings import Settings
from admincore.domain import (
    Action,
    ActionResult,
    BulkActionRequest,
    ListPage,
    MetricsSnapshot,
    Query,
    Record,
    SortOrder,
)
from admincore.exporters.records import export_records
from admincore.infrastructure.collaborators import BulkAction, FieldUpdate, ListFetch, RecordDelete
from admincore.utils.logger import get_logger

logger = get_logger(__name__)


class ResourceConsole:
    """Wires store, selection, list controller, mutations and metrics together.

    Instances are built per session by :func:`admincore.app.create_console`
    and are not shared between sessions.
    """

    def __init__(
        self,
        resource: ResourceSpec,
        *,
        list_fetch: ListFetch,
        bulk_action: BulkAction,
        field_update: FieldUpdate | None = None,
        record_delete: RecordDelete | None = None,
        metrics_profile: MetricsProfile | None = None,
        candidates: CandidateTable | None = None,
        settings: Settings | None = None,
        session: SessionGuard | None = None,
    ) -> None:
        settings = settings or Settings()
        self.resource = resource
        self.session = session or SessionGuard()
        self.store = OptimisticStateStore(page_size=settings.page_size)
        self.selection = SelectionSet()

        initial = Query(
            page_size=settings.page_size,
            sort_field=resource.default_sort,
            sort_order=SortOrder(resource.default_order),
        )
        self.controller = QueryController(
            list_fetch,
            self.store,
            query=initial,
            debounce_seconds=settings.debounce_seconds,
            session=self.session,
        )
        self.metrics = MetricsAggregator(
            metrics_profile or MetricsProfile(),
            self.store,
            timeout=settings.metric_timeout,
            session=self.session,
        )
        self.executor = BulkActionExecutor(
            bulk_action,
            self.store,
            self.selection,
            record_delete=record_delete,
            session=self.session,
            on_mutated=self.schedule_metrics,
        )
        self.retrier: FieldUpdateRetrier | None = None
        if field_update is not None:
            self.retrier = FieldUpdateRetrier(
                field_update,
                self.store,
                candidates=candidates,
                session=self.session,
                editable_fields=resource.editable_fields,
            )

        self._metrics_tasks: set[asyncio.Task[MetricsSnapshot | None]] = set()
        self.controller.on_commit(self._on_page_committed)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def _on_page_committed(self, page: ListPage) -> None:
        self.schedule_metrics()

    def schedule_metrics(self) -> None:
        task = asyncio.get_running_loop().create_task(self.metrics.refresh())
        self._metrics_tasks.add(task)
        task.add_done_callback(self._metrics_tasks.discard)

    async def mount(self) -> ListPage | None:
        """Load the first page and its metrics."""

        page = await self.controller.refresh()
        if page is None:
            # A successful commit schedules metrics itself.
            self.schedule_metrics()
        await self.wait_idle()
        return page

    async def wait_idle(self) -> None:
        while True:
            await self.controller.wait_idle()
            pending = {task for task in self._metrics_tasks if not task.done()}
            if not pending and not self.controller.pending:
                return
            if pending:
                await asyncio.wait(pending)

    def close(self) -> None:
        self.controller.close()
        for task in list(self._metrics_tasks):
            task.cancel()
        self._metrics_tasks.clear()

    # ------------------------------------------------------------------
    # list & selection
    # ------------------------------------------------------------------
    @property
    def items(self) -> list[Record]:
        return self.store.items

    @property
    def query(self) -> Query:
        return self.controller.query

    def update_query(self, **patch: Any) -> Query:
        return self.controller.update(**patch)

    def go_to_page(self, page: int) -> Query:
        return self.controller.go_to_page(page)

    def toggle_sort(self, field: str) -> Query:
        return self.controller.toggle_sort(field)

    def toggle(self, record_id: str) -> bool:
        return self.selection.toggle(record_id)

    def select_all_on_page(self, checked: bool | None = None) -> bool:
        return self.selection.select_all_on_page(self.store.page_ids, checked)

    # ------------------------------------------------------------------
    # mutations
    # ------------------------------------------------------------------
    async def bulk(self, actions: Action | Iterable[Action]) -> ActionResult:
        if isinstance(actions, Action):
            actions = [actions]
        request = BulkActionRequest.build(self.selection.ids, actions)
        result = await self.executor.execute(request)
        if result.requires_refresh:
            await self.controller.refresh()
        return result

    async def save_field(self, record_id: str, field: str, value: Any) -> Record:
        if self.retrier is None:
            raise UnsupportedOperationError(f"{self.resource.label} records cannot be edited inline")
        return await self.retrier.save(record_id, field, value)

    async def delete(self, record_id: str) -> str:
        return await self.executor.delete(record_id)

    def export(self, path: Path, *, selected_only: bool = False) -> Path:
        records = self.store.items
        if selected_only:
            records = [record for record in records if record.id in self.selection]
        logger.info("Exporting %s %s record(s) to %s", len(records), self.resource.name, path)
        return export_records(path, records, self.resource)
