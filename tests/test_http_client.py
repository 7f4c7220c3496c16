from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
import sys

sys.path.append(str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from admincore.core.errors import (
    AuthError,
    RequestTimeoutError,
    ResponseSchemaError,
    ServerError,
    ValidationError,
)
from admincore.domain import Action, Query, SortOrder
from admincore.infrastructure import AdminApiClient

BASE_URL = "http://admin.test/api"


def _client(handler, token: str | None = "secret-token") -> AdminApiClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AdminApiClient(BASE_URL, token_supplier=lambda: token, http_client=http_client)


@pytest.mark.asyncio
async def test_fetch_sends_query_params_and_bearer_token():
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["params"] = dict(request.url.params)
        captured["auth"] = request.headers.get("Authorization")
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [
                    {"_id": "u1", "name": "Ada", "role": "admin", "createdAt": "2024-01-01"},
                    {"_id": "u2", "name": "Bob", "role": "user"},
                ],
                "total": 12,
            },
        )

    client = _client(handler)
    query = Query(page=2, page_size=2, sort_field="name", sort_order=SortOrder.DESC, filters={"role": "admin"}, search="ad")
    page = await client.resource("users").fetch(query)

    assert captured["path"] == "/api/users/admin/users"
    assert captured["params"] == {
        "page": "2",
        "limit": "2",
        "sortField": "name",
        "sortOrder": "desc",
        "query": "ad",
        "role": "admin",
    }
    assert captured["auth"] == "Bearer secret-token"
    assert page.total == 12
    assert [record.id for record in page.items] == ["u1", "u2"]
    assert page.items[0].role == "admin"
    assert page.items[0].created_at == "2024-01-01"
    assert "createdAt" not in page.items[0].fields


@pytest.mark.asyncio
async def test_missing_token_sends_no_authorization_header():
    seen: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return httpx.Response(200, json={"success": True, "count": 3})

    client = _client(handler, token=None)
    assert await client.resource("orders").count() == 3
    assert seen == [None]


@pytest.mark.asyncio
async def test_bulk_posts_all_ids_and_actions_in_one_request():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/api/orders/bulk-update"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"success": True, "message": "2 orders updated", "result": {"modified": 2}})

    client = _client(handler)
    response = await client.resource("orders").bulk(
        ["o1", "o2"],
        [Action("updateStatus", {"status": "shipped"})],
    )

    assert bodies == [{"orderIds": ["o1", "o2"], "actions": [{"action": "updateStatus", "data": {"status": "shipped"}}]}]
    assert response.message == "2 orders updated"
    assert response.result == {"modified": 2}


@pytest.mark.asyncio
async def test_unauthorized_maps_to_auth_error():
    client = _client(lambda request: httpx.Response(401, json={"success": False, "message": "Token expired"}))

    with pytest.raises(AuthError) as excinfo:
        await client.resource("users").fetch(Query())
    assert excinfo.value.message == "Token expired"


@pytest.mark.asyncio
async def test_validation_error_names_first_field():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "success": False,
                "message": "Validation failed",
                "validationErrors": [{"field": "role", "message": "Invalid role"}],
            },
        )

    client = _client(handler)
    with pytest.raises(ValidationError) as excinfo:
        await client.resource("users").update("u1", {"id": "u1", "role": "user"})

    assert excinfo.value.field == "role"
    assert excinfo.value.names_field("role")
    assert not excinfo.value.names_field("email")


@pytest.mark.asyncio
async def test_server_error_keeps_status_and_message():
    client = _client(lambda request: httpx.Response(503, json={"message": "Maintenance"}))

    with pytest.raises(ServerError) as excinfo:
        await client.resource("coupons").delete("c1")
    assert excinfo.value.status_code == 503
    assert excinfo.value.message == "Maintenance"


@pytest.mark.asyncio
async def test_unexpected_list_shape_raises_schema_error():
    client = _client(lambda request: httpx.Response(200, json={"users": [], "count": 0}))

    with pytest.raises(ResponseSchemaError):
        await client.resource("users").fetch(Query())


@pytest.mark.asyncio
async def test_transport_timeout_maps_to_request_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = _client(handler)
    with pytest.raises(RequestTimeoutError):
        await client.resource("users").count()


@pytest.mark.asyncio
async def test_undecodable_response_maps_to_server_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError("broken body", request=request)

    client = _client(handler)
    with pytest.raises(ServerError) as excinfo:
        await client.resource("users").fetch(Query())
    assert "broken body" in excinfo.value.message


@pytest.mark.asyncio
async def test_order_metrics_parses_money_as_decimal():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/orders/metrics"
        assert request.url.params["dateFrom"] == "2024-01-01"
        return httpx.Response(
            200,
            json={"success": True, "data": {"totalOrders": 4, "deliveredOrders": 2, "totalRevenue": "500.00"}},
        )

    client = _client(handler)
    metrics = await client.resource("orders").order_metrics(date_from="2024-01-01")

    assert metrics.totalOrders == 4
    assert metrics.totalRevenue == Decimal("500.00")
    assert metrics.averageOrderValue is None


def test_base_url_requires_scheme_and_host():
    with pytest.raises(ValueError):
        AdminApiClient("localhost:5000/api")
