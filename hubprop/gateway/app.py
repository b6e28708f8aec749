from __future__ import annotations

import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config.loader import Settings, load_settings
from .service import INVALID_BODY_MESSAGE, MISSING_OBJECT_TYPE_MESSAGE, Gateway, GatewayResponse

"""FastAPI application exposing the gateway endpoints.

GET  /hubspot-schemas
GET  /hubspot-property-groups?objectType=<id>
POST /hubspot-upload?objectType=<id>   body: list of property records
"""

logger = logging.getLogger(__name__)


def _respond(result: GatewayResponse) -> JSONResponse:
    return JSONResponse(result.body, status_code=result.status_code)


def create_app(settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    settings = settings or load_settings()
    gateway = Gateway(settings, transport=transport)

    app = FastAPI(
        title="hubprop-gateway",
        description="Bulk property creation proxy for the HubSpot CRM API",
        version="0.1.0",
    )
    app.state.gateway = gateway

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/hubspot-schemas")
    async def hubspot_schemas():
        return _respond(await gateway.fetch_schemas())

    @app.get("/hubspot-property-groups")
    async def hubspot_property_groups(objectType: str | None = None):  # noqa: N803
        return _respond(await gateway.fetch_property_groups(objectType))

    @app.post("/hubspot-upload")
    async def hubspot_upload(request: Request, objectType: str | None = None):  # noqa: N803
        if not objectType:
            return _respond(GatewayResponse.failure(400, MISSING_OBJECT_TYPE_MESSAGE))
        try:
            properties = await request.json()
        except ValueError as e:
            logger.error(f"Error parsing request body: {e}")
            return _respond(GatewayResponse.failure(400, INVALID_BODY_MESSAGE))
        if not isinstance(properties, list):
            logger.error(f"request body must be a list, got {type(properties).__name__}")
            return _respond(GatewayResponse.failure(400, INVALID_BODY_MESSAGE))
        return _respond(await gateway.upload_properties(objectType, properties))

    return app
