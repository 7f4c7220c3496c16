"""Canonical wire schemas for the admin REST backend.

Every collaborator call validates its response against exactly one envelope
defined here. A body that does not match raises
:class:`~admincore.core.errors.ResponseSchemaError` instead of being probed
for alternative layouts.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from admincore.core.errors import ResponseSchemaError
from admincore.domain import Record

EnvelopeT = TypeVar("EnvelopeT", bound=BaseModel)


class RecordPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(alias="_id", min_length=1)
    created_at: str | None = Field(default=None, alias="createdAt")
    updated_at: str | None = Field(default=None, alias="updatedAt")

    def to_record(self) -> Record:
        return Record(
            id=self.id,
            fields=dict(self.model_extra or {}),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ListEnvelope(BaseModel):
    success: bool = True
    message: str | None = None
    data: list[RecordPayload]
    total: int = Field(ge=0)


class RecordEnvelope(BaseModel):
    success: bool = True
    message: str | None = None
    data: RecordPayload


class BulkEnvelope(BaseModel):
    success: bool = True
    message: str = ""
    result: dict[str, Any] = Field(default_factory=dict)


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str = ""


class CountEnvelope(BaseModel):
    success: bool = True
    count: int = Field(ge=0)


class StatusCountsEnvelope(BaseModel):
    success: bool = True
    active: int = Field(ge=0)
    inactive: int = Field(ge=0)


class BreakdownEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(alias="_id")
    count: int = Field(ge=0)


class BreakdownEnvelope(BaseModel):
    success: bool = True
    counts: list[BreakdownEntry]

    def as_mapping(self) -> dict[str, int]:
        merged: dict[str, int] = {}
        for entry in self.counts:
            merged[entry.key] = merged.get(entry.key, 0) + entry.count
        return merged


class OrderMetrics(BaseModel):
    totalOrders: int = Field(default=0, ge=0)
    pendingOrders: int = Field(default=0, ge=0)
    processingOrders: int = Field(default=0, ge=0)
    shippedOrders: int = Field(default=0, ge=0)
    deliveredOrders: int = Field(default=0, ge=0)
    cancelledOrders: int = Field(default=0, ge=0)
    refundedOrders: int = Field(default=0, ge=0)
    totalRevenue: Decimal = Decimal("0")
    pendingRevenue: Decimal = Decimal("0")
    averageOrderValue: Decimal | None = None


class OrderMetricsEnvelope(BaseModel):
    success: bool = True
    data: OrderMetrics


class FieldErrorDetail(BaseModel):
    field: str | None = None
    message: str = ""


class ErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    message: str | None = None
    validationErrors: list[FieldErrorDetail] = Field(default_factory=list)


def parse_envelope(model: type[EnvelopeT], payload: Any, *, context: str) -> EnvelopeT:
    """Validate ``payload`` against ``model`` or raise :class:`ResponseSchemaError`."""

    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ResponseSchemaError(f"Unexpected response from {context}: {exc.error_count()} schema error(s)") from exc


__all__ = [
    "BreakdownEntry",
    "BreakdownEnvelope",
    "BulkEnvelope",
    "CountEnvelope",
    "ErrorBody",
    "FieldErrorDetail",
    "ListEnvelope",
    "MessageEnvelope",
    "OrderMetrics",
    "OrderMetricsEnvelope",
    "RecordEnvelope",
    "RecordPayload",
    "StatusCountsEnvelope",
    "parse_envelope",
]
