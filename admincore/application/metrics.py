"""Dashboard aggregates with remote, page-local and static fallbacks."""
from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Mapping

import pandas as pd

from admincore.application.session import SessionGuard
from admincore.application.store import OptimisticStateStore
from admincore.core import rules
from admincore.core.errors import AdminError, MetricsUnavailableError
from admincore.domain import MetricsSnapshot, MetricsStatus, Record
from admincore.infrastructure.collaborators import MetricEndpoint
from admincore.infrastructure.http import ResourceGateway
from admincore.utils.logger import get_logger

logger = get_logger(__name__)

MetricValues = dict[str, dict[str, Any]]
LocalRecompute = Callable[[list[Record]], MetricValues]
Finalizer = Callable[[MetricValues], None]


@dataclass(slots=True)
class MetricSource:
    """One remote metric endpoint.

    With ``key=None`` the endpoint returns a mapping that is merged into
    ``category``; otherwise its scalar result is stored under ``key``.
    """

    category: str
    key: str | None
    fetch: MetricEndpoint
    default: Any = 0

    @property
    def label(self) -> str:
        return f"{self.category}.{self.key}" if self.key else self.category


@dataclass(frozen=True, slots=True)
class TotalCheck:
    category: str
    total: str
    parts: tuple[str, ...]


@dataclass(slots=True)
class MetricsProfile:
    sources: list[MetricSource] = field(default_factory=list)
    defaults: MetricValues = field(default_factory=dict)
    local: LocalRecompute | None = None
    checks: list[TotalCheck] = field(default_factory=list)
    finalize: Finalizer | None = None


class MetricsAggregator:
    def __init__(
        self,
        profile: MetricsProfile,
        store: OptimisticStateStore,
        *,
        timeout: float = 5.0,
        session: SessionGuard | None = None,
    ) -> None:
        self._profile = profile
        self._store = store
        self._timeout = timeout
        self._session = session or SessionGuard()
        self._generation = 0

    @property
    def profile(self) -> MetricsProfile:
        return self._profile

    # ------------------------------------------------------------------
    # tiers
    # ------------------------------------------------------------------
    async def _settle(self, source: MetricSource) -> tuple[Any, bool]:
        try:
            value = await asyncio.wait_for(source.fetch(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Metric %s timed out after %ss; using default", source.label, self._timeout)
            return source.default, False
        except AdminError as exc:
            self._session.check(exc)
            logger.warning("Metric %s failed: %s; using default", source.label, exc.message)
            return source.default, False
        except Exception:
            logger.warning("Metric %s raised unexpectedly; using default", source.label, exc_info=True)
            return source.default, False
        return value, True

    def _apply_checks(self, values: MetricValues, obtained: set[tuple[str, str]]) -> None:
        for check in self._profile.checks:
            if not all((check.category, part) in obtained for part in check.parts):
                continue
            bucket = values.setdefault(check.category, {})
            total, overwritten = rules.reconcile_total(bucket.get(check.total), [bucket[part] for part in check.parts])
            if overwritten:
                logger.warning(
                    "%s.%s=%s disagrees with its breakdown; using %s",
                    check.category,
                    check.total,
                    bucket.get(check.total),
                    total,
                )
                bucket[check.total] = total

    def _finish(self, values: MetricValues, status: MetricsStatus | None, defaulted: list[str]) -> MetricsSnapshot:
        if self._profile.finalize is not None:
            self._profile.finalize(values)
        return MetricsSnapshot(values=values, status=status, defaulted=defaulted)

    async def compute_remote(self) -> MetricsSnapshot:
        sources = self._profile.sources
        if not sources:
            raise MetricsUnavailableError("no remote metric sources configured")

        settled = await asyncio.gather(*(self._settle(source) for source in sources))
        if not any(ok for _, ok in settled):
            raise MetricsUnavailableError("every remote metric source failed")

        values = copy.deepcopy(self._profile.defaults)
        obtained: set[tuple[str, str]] = set()
        defaulted: list[str] = []
        for source, (value, ok) in zip(sources, settled):
            bucket = values.setdefault(source.category, {})
            if source.key is None:
                mapping = dict(value) if isinstance(value, Mapping) else {}
                bucket.update(mapping)
                if ok:
                    obtained.update((source.category, key) for key in mapping)
            else:
                bucket[source.key] = value
                if ok:
                    obtained.add((source.category, source.key))
            if not ok:
                defaulted.append(source.label)

        self._apply_checks(values, obtained)
        return self._finish(values, MetricsStatus.PARTIAL if defaulted else None, defaulted)

    def compute_local(self) -> MetricsSnapshot:
        if self._profile.local is None:
            raise MetricsUnavailableError("no local recomputation for this view")
        records = self._store.items
        if not records:
            raise MetricsUnavailableError("no records loaded to recompute from")

        values = copy.deepcopy(self._profile.defaults)
        for category, metrics in self._profile.local(records).items():
            values.setdefault(category, {}).update(metrics)
        return self._finish(values, MetricsStatus.LOCAL_PAGE, [])

    def compute_defaults(self) -> MetricsSnapshot:
        values = copy.deepcopy(self._profile.defaults)
        defaulted = sorted(values)
        return self._finish(values, MetricsStatus.DEFAULTS, defaulted)

    async def compute(self) -> MetricsSnapshot:
        try:
            return await self.compute_remote()
        except MetricsUnavailableError as exc:
            logger.warning("Remote metrics unavailable (%s); recomputing from the loaded page", exc.message)
        except Exception:
            logger.warning("Remote metrics failed; recomputing from the loaded page", exc_info=True)
        try:
            return self.compute_local()
        except MetricsUnavailableError as exc:
            logger.warning("Local metrics unavailable (%s); falling back to defaults", exc.message)
        except Exception:
            logger.warning("Local metrics recomputation failed; falling back to defaults", exc_info=True)
        return self.compute_defaults()

    async def refresh(self) -> MetricsSnapshot | None:
        """Compute a snapshot and commit it unless a newer refresh started meanwhile."""

        self._generation += 1
        generation = self._generation
        snapshot = await self.compute()
        if generation != self._generation:
            return None
        self._store.commit_metrics(snapshot)
        return snapshot


# ----------------------------------------------------------------------
# page-local recomputation
# ----------------------------------------------------------------------
def records_frame(records: list[Record]) -> pd.DataFrame:
    return pd.DataFrame([record.as_dict() for record in records])


def _truthy_count(frame: pd.DataFrame, column: str) -> int:
    if column not in frame:
        return 0
    return int(frame[column].eq(True).sum())


def _value_counts(frame: pd.DataFrame, column: str) -> dict[str, int]:
    if column not in frame:
        return {}
    counts = frame[column].dropna().astype(str).value_counts()
    return {str(key): int(value) for key, value in counts.items()}


def _recent_count(frame: pd.DataFrame, column: str, days: int, now: datetime | None = None) -> int:
    if column not in frame:
        return 0
    stamps = pd.to_datetime(frame[column], errors="coerce", utc=True)
    cutoff = pd.Timestamp(now or datetime.now(timezone.utc)) - pd.Timedelta(days=days)
    return int((stamps >= cutoff).sum())


def local_user_metrics(records: list[Record]) -> MetricValues:
    frame = records_frame(records)
    active = _truthy_count(frame, "isActive")
    return {
        "users": {
            "total": len(frame),
            "active": active,
            "inactive": len(frame) - active,
            "new": _recent_count(frame, "createdAt", 30),
        },
        "roles": _value_counts(frame, "role"),
    }


def local_order_metrics(records: list[Record]) -> MetricValues:
    frame = records_frame(records)
    by_status = {key.lower(): value for key, value in _value_counts(frame, "status").items()}
    summary = rules.summarise_revenue(record.as_dict() for record in records)
    orders: dict[str, Any] = {"totalOrders": len(frame)}
    for status in rules.ORDER_STATUSES:
        orders[f"{status}Orders"] = by_status.get(status, 0)
    orders.update(
        totalRevenue=summary.total_revenue,
        pendingRevenue=summary.pending_revenue,
        averageOrderValue=summary.average_order_value,
    )
    return {"orders": orders}


def local_coupon_metrics(records: list[Record]) -> MetricValues:
    frame = records_frame(records)
    active = _truthy_count(frame, "isActive")
    expired = 0
    if "expiryDate" in frame:
        stamps = pd.to_datetime(frame["expiryDate"], errors="coerce", utc=True)
        expired = int((stamps < pd.Timestamp(datetime.now(timezone.utc))).sum())
    return {"coupons": {"total": len(frame), "active": active, "inactive": len(frame) - active, "expired": expired}}


def local_subscriber_metrics(records: list[Record]) -> MetricValues:
    frame = records_frame(records)
    active = _truthy_count(frame, "isActive")
    return {
        "subscribers": {
            "total": len(frame),
            "active": active,
            "inactive": len(frame) - active,
            "new": _recent_count(frame, "createdAt", 30),
        }
    }


# ----------------------------------------------------------------------
# per-resource profiles
# ----------------------------------------------------------------------
ZERO_MONEY = Decimal("0.00")


def fill_average_order_value(values: MetricValues) -> None:
    orders = values.get("orders")
    if not orders or orders.get("averageOrderValue") is not None:
        return
    eligible = sum(int(orders.get(f"{status}Orders", 0)) for status in sorted(rules.REVENUE_STATUSES))
    orders["averageOrderValue"] = rules.average_order_value(rules.to_decimal(orders.get("totalRevenue")), eligible)


def user_profile(gateway: ResourceGateway) -> MetricsProfile:
    return MetricsProfile(
        sources=[
            MetricSource("users", "total", gateway.count),
            MetricSource("users", None, gateway.count_by_status, {"active": 0, "inactive": 0}),
            MetricSource("users", "new", partial(gateway.count_new, 30)),
            MetricSource("users", "returning", gateway.count_returning),
            MetricSource("roles", None, partial(gateway.count_by, "role"), {}),
        ],
        defaults={"users": {"total": 0, "active": 0, "inactive": 0, "new": 0, "returning": 0}, "roles": {}},
        local=local_user_metrics,
        checks=[TotalCheck("users", "total", ("active", "inactive"))],
    )


def order_profile(
    gateway: ResourceGateway,
    *,
    date_from: str | None = None,
    date_to: str | None = None,
) -> MetricsProfile:
    """Order dashboard, optionally limited to orders placed within a date range."""

    defaults: dict[str, Any] = {"totalOrders": 0}
    defaults.update({f"{status}Orders": 0 for status in rules.ORDER_STATUSES})
    defaults.update(totalRevenue=ZERO_MONEY, pendingRevenue=ZERO_MONEY, averageOrderValue=ZERO_MONEY)

    async def fetch_order_metrics() -> dict[str, Any]:
        metrics = await gateway.order_metrics(date_from=date_from, date_to=date_to)
        return metrics.model_dump()

    return MetricsProfile(
        sources=[MetricSource("orders", None, fetch_order_metrics, dict(defaults))],
        defaults={"orders": defaults},
        local=local_order_metrics,
        checks=[TotalCheck("orders", "totalOrders", tuple(f"{status}Orders" for status in rules.ORDER_STATUSES))],
        finalize=fill_average_order_value,
    )


def coupon_profile(gateway: ResourceGateway) -> MetricsProfile:
    return MetricsProfile(
        sources=[
            MetricSource("coupons", "total", gateway.count),
            MetricSource("coupons", None, gateway.count_by_status, {"active": 0, "inactive": 0}),
        ],
        defaults={"coupons": {"total": 0, "active": 0, "inactive": 0, "expired": 0}},
        local=local_coupon_metrics,
        checks=[TotalCheck("coupons", "total", ("active", "inactive"))],
    )


def subscriber_profile(gateway: ResourceGateway) -> MetricsProfile:
    return MetricsProfile(
        sources=[
            MetricSource("subscribers", "total", gateway.count),
            MetricSource("subscribers", None, gateway.count_by_status, {"active": 0, "inactive": 0}),
            MetricSource("subscribers", "new", partial(gateway.count_new, 30)),
        ],
        defaults={"subscribers": {"total": 0, "active": 0, "inactive": 0, "new": 0}},
        local=local_subscriber_metrics,
        checks=[TotalCheck("subscribers", "total", ("active", "inactive"))],
    )


PROFILE_BUILDERS: dict[str, Callable[[ResourceGateway], MetricsProfile]] = {
    "users": user_profile,
    "orders": order_profile,
    "coupons": coupon_profile,
    "subscribers": subscriber_profile,
}


def profile_for(
    gateway: ResourceGateway,
    *,
    date_from: str | None = None,
    date_to: str | None = None,
) -> MetricsProfile:
    if gateway.spec.name == "orders":
        return order_profile(gateway, date_from=date_from, date_to=date_to)
    builder = PROFILE_BUILDERS.get(gateway.spec.name)
    return builder(gateway) if builder is not None else MetricsProfile()
