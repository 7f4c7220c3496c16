"""Numeric rules behind the dashboard aggregates."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable, Mapping

REVENUE_STATUSES = frozenset({"shipped", "delivered"})
PENDING_REVENUE_STATUSES = frozenset({"pending", "processing"})
ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled", "refunded")

AMOUNT_FIELD = "totalAmount"


@dataclass
class RevenueSummary:
    total_revenue: Decimal = Decimal("0")
    pending_revenue: Decimal = Decimal("0")
    revenue_orders: int = 0

    @property
    def average_order_value(self) -> Decimal:
        return average_order_value(self.total_revenue, self.revenue_orders)


def _quantize(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError):
        return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


def average_order_value(revenue: Decimal, count: int) -> Decimal:
    if count <= 0:
        return Decimal("0")
    return _quantize(revenue / Decimal(count))


def summarise_revenue(orders: Iterable[Mapping[str, Any]], *, amount_field: str = AMOUNT_FIELD) -> RevenueSummary:
    """Sum order amounts into revenue buckets by status.

    Statuses outside both allow-lists (cancelled, refunded, unknown) count
    towards neither bucket.
    """

    summary = RevenueSummary()
    for order in orders:
        status = str(order.get("status") or "").lower()
        amount = to_decimal(order.get(amount_field))
        if status in REVENUE_STATUSES:
            summary.total_revenue += amount
            summary.revenue_orders += 1
        elif status in PENDING_REVENUE_STATUSES:
            summary.pending_revenue += amount
    summary.total_revenue = _quantize(summary.total_revenue)
    summary.pending_revenue = _quantize(summary.pending_revenue)
    return summary


def reconcile_total(total: Any, parts: Iterable[Any]) -> tuple[Any, bool]:
    """Return the breakdown sum when it disagrees with ``total``.

    The second element tells whether the total was overwritten.
    """

    breakdown = sum(parts)
    if total != breakdown:
        return breakdown, True
    return total, False
