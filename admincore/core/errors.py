"""Error taxonomy shared by the HTTP collaborators and the application layer."""
from __future__ import annotations

from typing import Any


class AdminError(Exception):
    """Base class for every failure surfaced by the administration core."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AdminError):
    """Raised when the backend rejects a payload with field-scoped errors."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.errors = list(errors or [])

    def names_field(self, field: str) -> bool:
        if self.field == field:
            return True
        return any(item.get("field") == field for item in self.errors)


class ServerError(AdminError):
    """Raised for non-validation backend failures and transport errors."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResponseSchemaError(ServerError):
    """Raised when a response body does not match the canonical envelope."""


class AuthError(AdminError):
    """Raised on 401-class rejections; never retried locally."""


class RequestTimeoutError(AdminError, TimeoutError):
    """Raised when a call exceeds its transport-level ceiling."""


class EmptyTargetError(AdminError, ValueError):
    """Raised when a bulk action is requested without any selected ids."""

    def __init__(self, message: str = "At least one record id must be specified for a bulk action.") -> None:
        super().__init__(message)


class MetricsUnavailableError(AdminError):
    """Raised internally when a metrics tier cannot produce a snapshot."""


class UnsupportedOperationError(AdminError):
    """Raised when a resource view was built without the collaborator an operation needs."""


class FieldUpdateError(AdminError):
    """Terminal failure after every candidate encoding of a value was rejected."""

    def __init__(self, field: str, original_value: Any, attempts: list[Any]) -> None:
        tried = ", ".join(repr(value) for value in attempts)
        super().__init__(f"Failed to update {field}: the server rejected {original_value!r} (tried {tried}).")
        self.field = field
        self.original_value = original_value
        self.attempts = list(attempts)


__all__ = [
    "AdminError",
    "AuthError",
    "EmptyTargetError",
    "FieldUpdateError",
    "MetricsUnavailableError",
    "RequestTimeoutError",
    "ResponseSchemaError",
    "ServerError",
    "UnsupportedOperationError",
    "ValidationError",
]
