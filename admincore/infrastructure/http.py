"""HTTP implementation of the admin collaborators on top of httpx."""
from __future__ import annotations

from typing import Any, Generator, Mapping, Sequence
from urllib.parse import quote, urlparse

import httpx
from pydantic import ValidationError as SchemaValidationError

from admincore.core.errors import (
    AdminError,
    AuthError,
    RequestTimeoutError,
    ResponseSchemaError,
    ServerError,
    ValidationError,
)
from admincore.core.resources import ResourceSpec, get_resource
from admincore.core.schema import (
    BreakdownEnvelope,
    BulkEnvelope,
    CountEnvelope,
    ErrorBody,
    ListEnvelope,
    MessageEnvelope,
    OrderMetrics,
    OrderMetricsEnvelope,
    RecordEnvelope,
    StatusCountsEnvelope,
    parse_envelope,
)
from admincore.core.settings import DEFAULT_API_URL, Settings
from admincore.domain import Action, ListPage, Query, Record
from admincore.infrastructure.collaborators import TokenSupplier
from admincore.utils.logger import get_logger

logger = get_logger(__name__)


class BearerTokenAuth(httpx.Auth):
    """Attach the session's opaque bearer credential to every request."""

    def __init__(self, token_supplier: TokenSupplier) -> None:
        self._token_supplier = token_supplier

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._token_supplier()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


class AdminApiClient:
    """Async client for the admin REST backend."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        token_supplier: TokenSupplier | None = None,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")

        self._base_url = base_url.rstrip("/")
        self._auth = BearerTokenAuth(token_supplier) if token_supplier is not None else None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        token_supplier: TokenSupplier | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "AdminApiClient":
        return cls(
            settings.api_url,
            token_supplier=token_supplier,
            timeout=settings.request_timeout,
            http_client=http_client,
        )

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _url(self, path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self._base_url}{path}"

    @staticmethod
    def _error_for(response: httpx.Response) -> AdminError:
        status = response.status_code
        try:
            body = ErrorBody.model_validate(response.json())
        except (ValueError, SchemaValidationError):
            body = ErrorBody()

        details = body.validationErrors
        message = body.message or (details[0].message if details else "") or f"HTTP {status}"

        if status == 401:
            return AuthError(message)
        if status in (400, 422):
            field = next((item.field for item in details if item.field), None)
            return ValidationError(message, field=field, errors=[item.model_dump() for item in details])
        return ServerError(message, status_code=status)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        url = self._url(path)
        auth = self._auth if self._auth is not None else httpx.USE_CLIENT_DEFAULT
        try:
            response = await self._client.request(method, url, params=params, json=json, auth=auth)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"{method} {path} timed out") from exc
        except httpx.RequestError as exc:
            raise ServerError(f"Network error during {method} {path}: {exc}") from exc

        if response.status_code >= 400:
            error = self._error_for(response)
            logger.warning("%s %s failed with %s: %s", method, path, response.status_code, error.message)
            raise error

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseSchemaError(f"{method} {path} returned a non-JSON body", status_code=response.status_code) from exc

    def resource(self, spec: ResourceSpec | str) -> "ResourceGateway":
        if isinstance(spec, str):
            spec = get_resource(spec)
        return ResourceGateway(self, spec)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ResourceGateway:
    """Collaborator calls bound to one remote collection."""

    def __init__(self, client: AdminApiClient, spec: ResourceSpec) -> None:
        self._client = client
        self.spec = spec

    def _item_path(self, record_id: str, suffix: str = "") -> str:
        path = f"{self.spec.path}/{quote(str(record_id), safe='')}"
        return f"{path}/{suffix}" if suffix else path

    # ------------------------------------------------------------------
    # list & mutation collaborators
    # ------------------------------------------------------------------
    async def fetch(self, query: Query) -> ListPage:
        payload = await self._client.request("GET", self.spec.path, params=query.to_params(self.spec.search_param))
        envelope = parse_envelope(ListEnvelope, payload, context=f"{self.spec.name} list")
        return ListPage(items=[item.to_record() for item in envelope.data], total=envelope.total)

    async def bulk(self, ids: Sequence[str], actions: Sequence[Action]) -> BulkEnvelope:
        body = {
            self.spec.bulk_ids_key: list(ids),
            "actions": [action.to_wire() for action in actions],
        }
        payload = await self._client.request("POST", f"{self.spec.path}/{self.spec.bulk_path}", json=body)
        return parse_envelope(BulkEnvelope, payload, context=f"{self.spec.name} bulk update")

    async def update(self, record_id: str, payload: Mapping[str, Any]) -> Record:
        response = await self._client.request("PUT", self._item_path(record_id), json=dict(payload))
        envelope = parse_envelope(RecordEnvelope, response, context=f"{self.spec.name} update")
        return envelope.data.to_record()

    async def delete(self, record_id: str) -> str:
        response = await self._client.request("DELETE", self._item_path(record_id))
        return parse_envelope(MessageEnvelope, response, context=f"{self.spec.name} delete").message

    # ------------------------------------------------------------------
    # metric endpoints
    # ------------------------------------------------------------------
    async def count(self) -> int:
        payload = await self._client.request("GET", f"{self.spec.path}/count")
        return parse_envelope(CountEnvelope, payload, context=f"{self.spec.name} count").count

    async def count_new(self, days: int = 30) -> int:
        payload = await self._client.request("GET", f"{self.spec.path}/count-new", params={"days": days})
        return parse_envelope(CountEnvelope, payload, context=f"{self.spec.name} new count").count

    async def count_returning(self) -> int:
        payload = await self._client.request("GET", f"{self.spec.path}/count-returning")
        return parse_envelope(CountEnvelope, payload, context=f"{self.spec.name} returning count").count

    async def count_by_status(self) -> dict[str, int]:
        payload = await self._client.request("GET", f"{self.spec.path}/count-by-status")
        envelope = parse_envelope(StatusCountsEnvelope, payload, context=f"{self.spec.name} status counts")
        return {"active": envelope.active, "inactive": envelope.inactive}

    async def count_by(self, key: str) -> dict[str, int]:
        payload = await self._client.request("GET", f"{self.spec.path}/count-by-{key}")
        return parse_envelope(BreakdownEnvelope, payload, context=f"{self.spec.name} {key} breakdown").as_mapping()

    async def order_metrics(self, *, date_from: str | None = None, date_to: str | None = None) -> OrderMetrics:
        params = {key: value for key, value in (("dateFrom", date_from), ("dateTo", date_to)) if value}
        payload = await self._client.request("GET", f"{self.spec.path}/metrics", params=params or None)
        return parse_envelope(OrderMetricsEnvelope, payload, context=f"{self.spec.name} metrics").data


__all__ = ["AdminApiClient", "BearerTokenAuth", "ResourceGateway"]
