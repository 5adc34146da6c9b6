"""
LogAllot - Alert Sinks
======================

Delivers system alerts (serialized events from ``shared.schemas.events``)
to whoever watches the analysis service.

The engine only needs ``send_system_alert(message)``; which channel sits
behind it is a deployment decision:

- LoggingAlertSink: structured ERROR log line (default)
- WebhookAlertSink: JSON POST to a webhook URL
"""

import json
from typing import Any, Protocol

import httpx

from shared.utils.http_client import ServiceClient, ServiceClientConfig
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class AlertSink(Protocol):
    """Anything that can deliver a system alert."""

    async def send_system_alert(self, message: str) -> None:
        ...


def _decode_message(message: str) -> dict[str, Any]:
    """Alerts are JSON events; anything else is wrapped as plain text."""
    try:
        payload = json.loads(message)
    except json.JSONDecodeError:
        return {"message": message}
    if isinstance(payload, dict):
        return payload
    return {"message": message}


class LoggingAlertSink:
    """Writes alerts to the service log."""

    async def send_system_alert(self, message: str) -> None:
        payload = _decode_message(message)
        logger.error(
            f"System alert: {payload.get('event_type', 'message')}",
            extra={"alert": payload}
        )

    async def close(self) -> None:
        pass


class WebhookAlertSink:
    """
    Posts alerts to a webhook.

    Delivery problems are logged and swallowed; an alert must never turn
    into a second failure for the caller that raised it.

    Example:
        sink = WebhookAlertSink("https://hooks.example.com/logallot")
        await sink.send_system_alert(alert.to_message())
    """

    def __init__(
        self,
        webhook_url: str,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None
    ):
        self._service = ServiceClient(
            webhook_url,
            config=ServiceClientConfig(timeout_seconds=timeout_seconds),
            client=client,
        )

    async def send_system_alert(self, message: str) -> None:
        payload = _decode_message(message)

        try:
            response = await self._service.post(
                data=payload,
                headers={"X-Source-Service": "ai-analysis"}
            )
        except httpx.HTTPError as e:
            logger.error(
                f"HTTP error sending system alert: {e}",
                extra={"event_id": payload.get("event_id"), "error": str(e)}
            )
            return

        if response.status_code in (200, 201, 202, 204):
            logger.info(
                "System alert sent",
                extra={
                    "event_id": payload.get("event_id"),
                    "event_type": payload.get("event_type")
                }
            )
        else:
            logger.warning(
                f"Failed to send system alert: {response.status_code}",
                extra={
                    "event_id": payload.get("event_id"),
                    "status_code": response.status_code,
                }
            )

    async def close(self) -> None:
        await self._service.close()
