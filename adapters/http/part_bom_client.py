from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
import orjson
from pydantic import BaseModel, TypeAdapter, ValidationError

from domain.errors import ApiError
from domain.models import (
    AuditLogEntry,
    BomLinkPayload,
    BomTreeResponse,
    CreatePartPayload,
    PartDetails,
    PartRecord,
    PartSummary,
    TreeDepth,
)
from domain.ports.part_bom import PartBomApi

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT_SECONDS = 10.0

ModelT = TypeVar("ModelT", bound=BaseModel)

_PART_LIST_ADAPTER = TypeAdapter(list[PartSummary])
_AUDIT_LIST_ADAPTER = TypeAdapter(list[AuditLogEntry])


def extract_error_message(response: httpx.Response) -> str:
    fallback = f"Request failed with status {response.status_code}."
    try:
        body = orjson.loads(response.content)
    except orjson.JSONDecodeError:
        return fallback
    if not isinstance(body, dict):
        return fallback
    message = body.get("message")
    if isinstance(message, list):
        return ", ".join(str(item) for item in message)
    if isinstance(message, str):
        return message
    error = body.get("error")
    if isinstance(error, str):
        return error
    return fallback


def decode_body(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return orjson.loads(response.content)
    except orjson.JSONDecodeError:
        return response.text


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class HttpPartBomApi(PartBomApi):
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> HttpPartBomApi:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def search_parts(self, query: str) -> list[PartSummary]:
        params = {"q": query.strip()} if query.strip() else None
        data = await self._request("GET", "/parts", params=params)
        return self._parse_list(_PART_LIST_ADAPTER, data)

    async def get_part_details(self, part_id: str) -> PartDetails:
        data = await self._request("GET", f"/parts/{_segment(part_id)}")
        return self._parse(PartDetails, data)

    async def get_part_audit_logs(self, part_id: str) -> list[AuditLogEntry]:
        data = await self._request("GET", f"/parts/{_segment(part_id)}/audit-logs")
        return self._parse_list(_AUDIT_LIST_ADAPTER, data)

    async def get_bom_tree(
        self,
        root_id: str,
        depth: TreeDepth = 1,
        node_limit: int | None = None,
    ) -> BomTreeResponse:
        params = {"depth": str(depth)}
        if node_limit is not None:
            params["nodeLimit"] = str(node_limit)
        data = await self._request("GET", f"/bom/{_segment(root_id)}", params=params)
        return self._parse(BomTreeResponse, data)

    async def create_part(self, payload: CreatePartPayload) -> PartRecord:
        data = await self._request("POST", "/parts", body=payload.to_payload())
        return self._parse(PartRecord, data)

    async def create_bom_link(self, payload: BomLinkPayload) -> Any:
        return await self._request("POST", "/bom/links", body=payload.to_payload())

    async def update_bom_link(self, payload: BomLinkPayload) -> Any:
        return await self._request("PUT", "/bom/links", body=payload.to_payload())

    async def delete_bom_link(self, parent_id: str, child_id: str) -> Any:
        return await self._request(
            "DELETE", f"/bom/links/{_segment(parent_id)}/{_segment(child_id)}"
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        content = orjson.dumps(dict(body)) if body is not None else None
        try:
            response = await self._client.request(method, path, params=params, content=content)
        except httpx.HTTPError as exc:
            msg = f"Request to {path} failed: {exc}"
            raise ApiError(msg) from exc
        if not response.is_success:
            raise ApiError(extract_error_message(response), response.status_code)
        return decode_body(response)

    def _parse(self, model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            msg = f"Unexpected {model.__name__} payload from the part service."
            raise ApiError(msg) from exc

    def _parse_list(self, adapter: TypeAdapter[list[Any]], data: Any) -> list[Any]:
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            msg = "Unexpected list payload from the part service."
            raise ApiError(msg) from exc
