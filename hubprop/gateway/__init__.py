"""Thin HTTP gateway in front of the HubSpot CRM properties API."""

from .service import Gateway, GatewayResponse

__all__ = ["Gateway", "GatewayResponse"]
