"""Application layer exports."""

from .bulk import BulkActionExecutor
from .console import ResourceConsole
from .field_update import FieldUpdateRetrier
from .metrics import MetricSource, MetricsAggregator, MetricsProfile, TotalCheck, profile_for
from .query import QueryController
from .selection import SelectionSet
from .session import SessionGuard
from .store import OptimisticStateStore

__all__ = [
    "BulkActionExecutor",
    "FieldUpdateRetrier",
    "MetricSource",
    "MetricsAggregator",
    "MetricsProfile",
    "OptimisticStateStore",
    "QueryController",
    "ResourceConsole",
    "SelectionSet",
    "SessionGuard",
    "TotalCheck",
    "profile_for",
]
