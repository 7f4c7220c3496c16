"""Infrastructure layer exports."""

from .collaborators import (
    BulkAction,
    FieldUpdate,
    ListFetch,
    MetricEndpoint,
    RecordDelete,
    SessionTerminator,
    TokenSupplier,
)
from .http import AdminApiClient, BearerTokenAuth, ResourceGateway

__all__ = [
    "AdminApiClient",
    "BearerTokenAuth",
    "BulkAction",
    "FieldUpdate",
    "ListFetch",
    "MetricEndpoint",
    "RecordDelete",
    "ResourceGateway",
    "SessionTerminator",
    "TokenSupplier",
]
