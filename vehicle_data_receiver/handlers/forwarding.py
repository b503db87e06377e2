"""
HTTP Forwarding Handler
Forwards telemetry events to the Vehicle Management Service over HTTP
"""

import string
from typing import Any, Dict, List, Mapping

import httpx
import structlog

from vehicle_data_receiver.handlers.base import BaseEventHandler, HandlerError
from vehicle_data_receiver.models.telemetry_event import TelemetryEvent

logger = structlog.get_logger(__name__)

API_KEY_HEADER = "X-API-Key"


def create_api_client(base_url: str, api_key: str, timeout_seconds: float = 10.0) -> httpx.AsyncClient:
    """
    Create the shared HTTP client for the Vehicle Management Service

    Args:
        base_url: Service base URL
        api_key: API key sent with every request
        timeout_seconds: Per-request timeout

    Returns:
        Configured httpx.AsyncClient
    """
    return httpx.AsyncClient(
        base_url=base_url,
        headers={API_KEY_HEADER: api_key},
        timeout=timeout_seconds,
    )


class HttpForwardingHandler(BaseEventHandler):
    """
    Posts an event's payload to a path on the Vehicle Management Service

    The path is a template filled from the event: ``{imei}`` plus any key of
    the event payload, e.g. ``/v1/trucks/{truck_id}/speeds``.
    """

    def __init__(self, name: str, path_template: str, client: httpx.AsyncClient):
        self.name = name
        self.path_template = path_template
        self.client = client
        self._path_fields = [
            field for _, field, _, _ in string.Formatter().parse(path_template) if field
        ]

    def build_path(self, event: TelemetryEvent) -> str:
        values: Dict[str, Any] = {**event.payload, "imei": event.imei}
        missing = [field for field in self._path_fields if field not in values]
        if missing:
            raise HandlerError(self.name, f"Event is missing path fields: {', '.join(missing)}")
        return self.path_template.format(**values)

    def build_body(self, event: TelemetryEvent) -> Dict[str, Any]:
        body = {k: v for k, v in event.payload.items() if k not in self._path_fields}
        body["timestamp"] = event.timestamp
        return body

    async def process(self, event: TelemetryEvent) -> None:
        path = self.build_path(event)

        try:
            response = await self.client.post(path, json=self.build_body(event))
        except httpx.HTTPError as e:
            raise HandlerError(self.name, f"Request to {path} failed: {e}") from e

        if response.is_error:
            raise HandlerError(
                self.name,
                f"Vehicle Management Service responded {response.status_code} for {path}",
            )

        logger.debug(
            "Event forwarded",
            handler_name=self.name,
            imei=event.imei,
            path=path,
            status_code=response.status_code,
        )


def build_forwarding_handlers(
    routes: Mapping[str, str],
    client: httpx.AsyncClient,
) -> List[HttpForwardingHandler]:
    """
    Create one forwarding handler per configured route

    Args:
        routes: Mapping of handler name to path template
        client: Shared HTTP client

    Returns:
        List of handlers, ordered by name
    """
    return [
        HttpForwardingHandler(name=name, path_template=path, client=client)
        for name, path in sorted(routes.items())
    ]
