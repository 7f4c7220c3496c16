"""Bulk mutations over the selected records with optimistic cache updates."""
from __future__ import annotations

from typing import Any, Callable, Mapping

from admincore.application.selection import SelectionSet
from admincore.application.session import SessionGuard
from admincore.application.store import OptimisticStateStore
from admincore.core.errors import AdminError, UnsupportedOperationError
from admincore.domain import Action, ActionResult, BulkActionRequest
from admincore.infrastructure.collaborators import BulkAction, RecordDelete
from admincore.utils.logger import get_logger

logger = get_logger(__name__)

# action type -> (record field, payload key) patched on every targeted record
FIELD_REDUCERS: dict[str, tuple[str, str]] = {
    "changeRole": ("role", "role"),
    "changeStatus": ("isActive", "isActive"),
    "updateStatus": ("status", "status"),
}

REMOVE_PREFIX = "delete"


def is_removal(action: Action) -> bool:
    return action.type.startswith(REMOVE_PREFIX)


def reduce_actions(actions: tuple[Action, ...]) -> tuple[dict[str, Any], bool, bool]:
    """Fold declared actions into ``(field changes, removes, unknown)``."""

    changes: dict[str, Any] = {}
    removes = False
    unknown = False
    for action in actions:
        if is_removal(action):
            removes = True
            continue
        reducer = FIELD_REDUCERS.get(action.type)
        if reducer is None:
            unknown = True
            continue
        field, key = reducer
        payload: Mapping[str, Any] = action.payload or {}
        if key in payload:
            changes[field] = payload[key]
        else:
            unknown = True
    return changes, removes, unknown


class BulkActionExecutor:
    """Sends one bulk request per invocation and reconciles the cache on success."""

    def __init__(
        self,
        bulk_action: BulkAction,
        store: OptimisticStateStore,
        selection: SelectionSet,
        *,
        record_delete: RecordDelete | None = None,
        session: SessionGuard | None = None,
        on_mutated: Callable[[], None] | None = None,
    ) -> None:
        self._bulk_action = bulk_action
        self._record_delete = record_delete
        self._store = store
        self._selection = selection
        self._session = session or SessionGuard()
        self._on_mutated = on_mutated

    def _mutated(self) -> None:
        if self._on_mutated is not None:
            self._on_mutated()

    async def execute(self, request: BulkActionRequest) -> ActionResult:
        ids = list(request.target_ids)
        try:
            response = await self._bulk_action(ids, request.actions)
        except AdminError as exc:
            self._session.check(exc)
            logger.warning("Bulk %s on %s record(s) rejected: %s", [a.type for a in request.actions], len(ids), exc.message)
            raise

        changes, removes, unknown = reduce_actions(request.actions)
        result = ActionResult(message=response.message, result=dict(response.result), requires_refresh=unknown)
        if removes:
            result.removed_ids = self._store.remove(ids, total_removed=len(ids))
        elif changes:
            result.patched_ids = self._store.patch_many(ids, changes)

        self._selection.clear()
        logger.info("Bulk update applied to %s record(s): %s", len(ids), response.message or "ok")
        self._mutated()
        return result

    async def delete(self, record_id: str) -> str:
        if self._record_delete is None:
            raise UnsupportedOperationError("this resource does not support single-record deletion")
        try:
            message = await self._record_delete(record_id)
        except AdminError as exc:
            self._session.check(exc)
            logger.warning("Deleting %s failed: %s", record_id, exc.message)
            raise

        self._store.remove([record_id], total_removed=1)
        self._selection.clear()
        self._mutated()
        return message
