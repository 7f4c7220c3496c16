"""Domain layer definitions."""

from .records import (
    Action,
    ActionResult,
    BulkActionRequest,
    FieldUpdateAttempt,
    ListPage,
    MetricsSnapshot,
    MetricsStatus,
    Query,
    Record,
    SortOrder,
)

__all__ = [
    "Action",
    "ActionResult",
    "BulkActionRequest",
    "FieldUpdateAttempt",
    "ListPage",
    "MetricsSnapshot",
    "MetricsStatus",
    "Query",
    "Record",
    "SortOrder",
]
