"""Contracts for the remote collaborators consumed by the application layer."""
from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

from admincore.core.schema import BulkEnvelope
from admincore.domain import Action, ListPage, Query, Record


class ListFetch(Protocol):
    async def __call__(self, query: Query) -> ListPage: ...


class BulkAction(Protocol):
    async def __call__(self, ids: Sequence[str], actions: Sequence[Action]) -> BulkEnvelope: ...


class FieldUpdate(Protocol):
    async def __call__(self, record_id: str, payload: Mapping[str, Any]) -> Record: ...


class RecordDelete(Protocol):
    async def __call__(self, record_id: str) -> str: ...


class MetricEndpoint(Protocol):
    async def __call__(self) -> Any: ...


class TokenSupplier(Protocol):
    def __call__(self) -> str | None: ...


class SessionTerminator(Protocol):
    """The external logout hook; this core only invokes it."""

    def __call__(self) -> None: ...
