"""Domain entities for resource administration views."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping

from admincore.core.errors import EmptyTargetError


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortOrder":
        return SortOrder.DESC if self is SortOrder.ASC else SortOrder.ASC


class MetricsStatus(str, Enum):
    """Marks a snapshot that was not computed purely from remote endpoints."""

    PARTIAL = "partial"
    LOCAL_PAGE = "local_page"
    DEFAULTS = "defaults"


@dataclass(slots=True)
class Record:
    """Cached copy of one administered entity."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def status(self) -> Any:
        return self.fields.get("status")

    @property
    def role(self) -> Any:
        return self.fields.get("role")

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    def has_value(self, key: str) -> bool:
        value = self.fields.get(key)
        if value is None:
            return False
        if isinstance(value, str):
            return bool(value.strip())
        return True

    def patched(self, changes: Mapping[str, Any]) -> "Record":
        merged = dict(self.fields)
        merged.update(changes)
        return replace(self, fields=merged)

    def as_dict(self) -> dict[str, Any]:
        data = {"id": self.id, **self.fields}
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data


@dataclass(frozen=True, slots=True)
class Query:
    """Parameters of one list request."""

    page: int = 1
    page_size: int = 10
    sort_field: str | None = None
    sort_order: SortOrder = SortOrder.ASC
    filters: Mapping[str, str] = field(default_factory=dict)
    search: str = ""

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be at least 1")
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")

    def to_params(self, search_param: str = "search") -> dict[str, Any]:
        params: dict[str, Any] = {"page": self.page, "limit": self.page_size}
        if self.sort_field:
            params["sortField"] = self.sort_field
            params["sortOrder"] = self.sort_order.value
        if self.search:
            params[search_param] = self.search
        for key, value in self.filters.items():
            if value not in (None, ""):
                params[key] = value
        return params


@dataclass(slots=True)
class ListPage:
    items: list[Record]
    total: int


@dataclass(frozen=True, slots=True)
class Action:
    """One bulk action in wire form, e.g. ``Action("changeRole", {"role": "user"})``."""

    type: str
    payload: Mapping[str, Any] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        data: dict[str, Any] = {"action": self.type}
        if self.payload:
            data["data"] = dict(self.payload)
        return data


@dataclass(frozen=True, slots=True)
class BulkActionRequest:
    target_ids: tuple[str, ...]
    actions: tuple[Action, ...]

    def __post_init__(self) -> None:
        if not self.target_ids:
            raise EmptyTargetError()
        if not self.actions:
            raise ValueError("Please select at least one action to perform.")

    @classmethod
    def build(cls, target_ids: Iterable[str], actions: Iterable[Action]) -> "BulkActionRequest":
        return cls(target_ids=tuple(dict.fromkeys(target_ids)), actions=tuple(actions))


@dataclass(slots=True)
class ActionResult:
    """Outcome of one bulk request as reported by the server and applied locally."""

    message: str
    result: dict[str, Any] = field(default_factory=dict)
    patched_ids: list[str] = field(default_factory=list)
    removed_ids: list[str] = field(default_factory=list)
    requires_refresh: bool = False


@dataclass(slots=True)
class MetricsSnapshot:
    values: dict[str, dict[str, Any]] = field(default_factory=dict)
    status: MetricsStatus | None = None
    defaulted: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.status is not None

    def get(self, category: str, key: str, default: Any = None) -> Any:
        return self.values.get(category, {}).get(key, default)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {category: dict(metrics) for category, metrics in self.values.items()}
        if self.status is not None:
            data["_status"] = {"degraded": True, "source": self.status.value, "defaulted": list(self.defaulted)}
        return data


@dataclass(frozen=True, slots=True)
class FieldUpdateAttempt:
    field: str
    primary_value: Any
    candidate_values: tuple[Any, ...] = ()
    attempt_index: int = 0

    @property
    def max_attempts(self) -> int:
        return len(self.candidate_values) + 1

    @property
    def value(self) -> Any:
        if self.attempt_index == 0:
            return self.primary_value
        return self.candidate_values[self.attempt_index - 1]

    @property
    def has_next(self) -> bool:
        return self.attempt_index + 1 < self.max_attempts

    @property
    def tried(self) -> list[Any]:
        return [self.primary_value, *self.candidate_values[: self.attempt_index]]

    def advance(self) -> "FieldUpdateAttempt":
        if not self.has_next:
            raise IndexError(f"no candidate left for {self.field}")
        return replace(self, attempt_index=self.attempt_index + 1)
