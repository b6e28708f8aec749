from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config.loader import Settings

"""Pass-through calls to the HubSpot CRM API.

Each call attaches the server-side API key as a bearer token, performs a
single request (no retries) and converts the outcome into a GatewayResponse:

- missing API key          -> 500, fixed message
- upstream non-2xx (3xx too) -> upstream status, upstream ``message`` or fallback
- any other error (transport, bad URL, non-JSON body) -> 500, fixed message (logged, never raised)
"""

logger = logging.getLogger(__name__)

__all__ = [
    "Gateway",
    "GatewayResponse",
    "MISSING_API_KEY_MESSAGE",
    "MISSING_OBJECT_TYPE_MESSAGE",
    "INVALID_BODY_MESSAGE",
]

MISSING_API_KEY_MESSAGE = "HubSpot API key is not configured"
MISSING_OBJECT_TYPE_MESSAGE = "Object type is required"
INVALID_BODY_MESSAGE = "Invalid request body"


@dataclass(frozen=True)
class GatewayResponse:
    status_code: int
    body: Any = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def error(self) -> str | None:
        if not isinstance(self.body, dict):
            return None
        value = self.body.get("error")
        return str(value) if value is not None else None

    @staticmethod
    def failure(status_code: int, message: str) -> GatewayResponse:
        return GatewayResponse(status_code=status_code, body={"error": message})


class _UpstreamError(Exception):
    def __init__(self, status_code: int, body: Any) -> None:
        super().__init__(f"HubSpot API error: status={status_code} body={body}")
        self.status_code = status_code
        self.body = body

    def message_or(self, fallback: str) -> str:
        if isinstance(self.body, dict) and self.body.get("message"):
            return str(self.body["message"])
        return fallback


class Gateway:
    """Forwarding layer between callers and the HubSpot API.

    ``transport`` is passed straight to ``httpx.AsyncClient`` (tests inject
    ``httpx.MockTransport``).
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {
            "base_url": self.settings.hubspot.base_url,
            "headers": {
                "Authorization": f"Bearer {self.settings.api_key}",
                "Content-Type": "application/json",
            },
            "transport": self._transport,
        }
        if self.settings.hubspot.timeout_seconds is not None:
            kwargs["timeout"] = self.settings.hubspot.timeout_seconds
        return httpx.AsyncClient(**kwargs)

    async def _request(self, method: str, path: str, json_body: Any = None) -> Any:
        async with self._client() as client:
            response = await client.request(method, path, json=json_body)
        data = response.json()
        # 2xx 以外 (3xx 含む) は失敗扱い
        if not response.is_success:
            raise _UpstreamError(response.status_code, data)
        return data

    async def _forward(self, method: str, path: str, fallback: str, unexpected: str,
                       json_body: Any = None) -> tuple[GatewayResponse | None, Any]:
        if not self.settings.api_key:
            logger.error(MISSING_API_KEY_MESSAGE)
            return GatewayResponse.failure(500, MISSING_API_KEY_MESSAGE), None
        try:
            return None, await self._request(method, path, json_body)
        except _UpstreamError as e:
            logger.error(str(e))
            return GatewayResponse.failure(e.status_code, e.message_or(fallback)), None
        except Exception as e:
            # httpx.InvalidURL など HTTPError 以外も含め 500 に変換
            logger.exception(f"{unexpected}: {e}")
            return GatewayResponse.failure(500, unexpected), None

    async def fetch_schemas(self) -> GatewayResponse:
        failed, data = await self._forward(
            "GET",
            "/crm-object-schemas/v3/schemas",
            fallback="Failed to fetch schemas from HubSpot",
            unexpected="An unexpected error occurred while fetching schemas from HubSpot",
        )
        return failed or GatewayResponse(200, data)

    async def fetch_property_groups(self, object_type: str | None) -> GatewayResponse:
        if not object_type:
            return GatewayResponse.failure(400, MISSING_OBJECT_TYPE_MESSAGE)
        failed, data = await self._forward(
            "GET",
            f"/crm/v3/properties/{object_type}/groups",
            fallback=f"Failed to fetch property groups for {object_type} from HubSpot",
            unexpected=(
                f"An unexpected error occurred while fetching property groups "
                f"for {object_type} from HubSpot"
            ),
        )
        return failed or GatewayResponse(200, data)

    async def upload_properties(self, object_type: str | None, properties: list[Any]) -> GatewayResponse:
        """Batch-create ``properties`` (PropertyRecord dicts) on ``object_type``.

        Success body: ``{"numPropertiesCreated": <len(upstream results)>}``.
        """
        if not object_type:
            return GatewayResponse.failure(400, MISSING_OBJECT_TYPE_MESSAGE)
        logger.info(f"uploading {len(properties)} properties to {object_type}")
        failed, data = await self._forward(
            "POST",
            f"/crm/v3/properties/{object_type}/batch/create",
            fallback="Failed to upload properties to HubSpot",
            unexpected="An unexpected error occurred while uploading properties to HubSpot",
            json_body={"inputs": properties},
        )
        if failed is not None:
            return failed
        results = data.get("results") if isinstance(data, dict) else None
        created = len(results) if isinstance(results, list) else 0
        logger.info(f"HubSpot created {created} properties on {object_type}")
        return GatewayResponse(200, {"numPropertiesCreated": created})
