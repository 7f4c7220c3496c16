"""Catalogue of the remote collections administered by the console."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ResourceSpec:
    """Describes how one remote collection is addressed and listed."""

    name: str
    path: str
    label: str
    search_param: str = "search"
    bulk_path: str = "bulk-update"
    bulk_ids_key: str = "ids"
    default_sort: str = "createdAt"
    default_order: str = "desc"
    editable_fields: tuple[str, ...] = ()


USERS = ResourceSpec(
    name="users",
    path="/users/admin/users",
    label="Users",
    search_param="query",
    bulk_ids_key="userIds",
    default_sort="name",
    default_order="asc",
    editable_fields=("name", "email", "phone", "address", "role"),
)

ORDERS = ResourceSpec(
    name="orders",
    path="/orders",
    label="Orders",
    bulk_ids_key="orderIds",
)

COUPONS = ResourceSpec(
    name="coupons",
    path="/coupons",
    label="Coupons",
    bulk_ids_key="couponIds",
)

SUBSCRIBERS = ResourceSpec(
    name="subscribers",
    path="/email-list",
    label="Newsletter subscribers",
    bulk_ids_key="subscriberIds",
)

RESOURCES: dict[str, ResourceSpec] = {spec.name: spec for spec in (USERS, ORDERS, COUPONS, SUBSCRIBERS)}


def get_resource(name: str) -> ResourceSpec:
    try:
        return RESOURCES[name]
    except KeyError:
        known = ", ".join(sorted(RESOURCES))
        raise KeyError(f"unknown resource {name!r}; expected one of: {known}") from None


__all__ = ["COUPONS", "ORDERS", "RESOURCES", "ResourceSpec", "SUBSCRIBERS", "USERS", "get_resource"]
