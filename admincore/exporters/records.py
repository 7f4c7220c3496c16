from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pandas as pd

from admincore.core.resources import ResourceSpec
from admincore.domain import Record


def _customer(record: Record) -> dict[str, Any]:
    user = record.get("user")
    if isinstance(user, dict):
        return user
    shipping = record.get("shippingAddress")
    return shipping if isinstance(shipping, dict) else {}


def _order_row(record: Record) -> dict[str, Any]:
    customer = _customer(record)
    items = record.get("items") or []
    return {
        "Order ID": record.get("orderNumber") or record.id,
        "Date": record.created_at or "",
        "Customer": customer.get("name") or customer.get("fullName") or "",
        "Email": customer.get("email") or "",
        "Status": record.get("status") or "",
        "Items": len(items) if isinstance(items, list) else items,
        "Total Amount": record.get("totalAmount", 0),
        "Payment Method": record.get("paymentMethod") or "",
    }


def _flat_row(record: Record) -> dict[str, Any]:
    row = record.as_dict()
    # Nested documents do not fit a spreadsheet cell.
    return {key: value for key, value in row.items() if not isinstance(value, (dict, list))}


ROW_BUILDERS: dict[str, Callable[[Record], dict[str, Any]]] = {
    "orders": _order_row,
}


def records_to_frame(records: Iterable[Record], resource: ResourceSpec) -> pd.DataFrame:
    builder = ROW_BUILDERS.get(resource.name, _flat_row)
    return pd.DataFrame([builder(record) for record in records])


def export_records(path: Path, records: Iterable[Record], resource: ResourceSpec) -> Path:
    """Write records to ``.csv`` or ``.xlsx`` depending on the suffix of ``path``."""

    df = records_to_frame(records, resource)
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".xlsx":
        df.to_excel(path, index=False, engine="openpyxl", sheet_name=resource.label[:31])
    else:
        raise ValueError(f"unsupported export format: {path.suffix or '(none)'}")
    return path
