from __future__ import annotations

from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import pandas as pd
import pytest

from admincore.core.resources import ORDERS, USERS
from admincore.domain import Record
from admincore.exporters.records import export_records


def _order() -> Record:
    return Record(
        id="64f0c0ffee",
        fields={
            "orderNumber": "ORD-1001",
            "user": {"name": "Ada Lovelace", "email": "ada@example.com"},
            "status": "delivered",
            "items": [{"sku": "A"}, {"sku": "B"}],
            "totalAmount": 42.5,
            "paymentMethod": "card",
        },
        created_at="2024-03-01T10:00:00Z",
    )


def test_orders_csv_uses_order_columns(tmp_path):
    path = export_records(tmp_path / "out" / "orders.csv", [_order()], ORDERS)

    df = pd.read_csv(path)
    assert list(df.columns) == [
        "Order ID",
        "Date",
        "Customer",
        "Email",
        "Status",
        "Items",
        "Total Amount",
        "Payment Method",
    ]
    row = df.iloc[0]
    assert row["Order ID"] == "ORD-1001"
    assert row["Customer"] == "Ada Lovelace"
    assert row["Items"] == 2
    assert row["Total Amount"] == 42.5


def test_users_xlsx_flattens_scalar_fields(tmp_path):
    users = [
        Record(id="u1", fields={"name": "Ada", "role": "admin", "addresses": [{"city": "London"}]}),
        Record(id="u2", fields={"name": "Bob", "role": "user"}),
    ]
    path = export_records(tmp_path / "users.xlsx", users, USERS)

    df = pd.read_excel(path, engine="openpyxl")
    assert list(df["id"]) == ["u1", "u2"]
    assert "addresses" not in df.columns
    assert list(df["role"]) == ["admin", "user"]


def test_unknown_format_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        export_records(tmp_path / "users.json", [], USERS)
