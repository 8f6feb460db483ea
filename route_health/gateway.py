from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from route_health.models import DeviceRecord


logger = structlog.get_logger(__name__)

FETCH_TIMEOUT_SECONDS = 15.0
_MAX_ERROR_BODY = 2000


@dataclass(frozen=True)
class GatewayConfig:
    api_key: str
    project_id: str
    base_url: str = "https://api.telerivet.com/v1"
    timeout_seconds: float = FETCH_TIMEOUT_SECONDS

    @property
    def phones_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/projects/{self.project_id}/phones"


class UpstreamFetchError(Exception):
    """The gateway could not be reached, rejected the request, or timed out."""

    def __init__(self, message: str, *, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _response_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        text = resp.text or ""
        return text if len(text) <= _MAX_ERROR_BODY else text[:_MAX_ERROR_BODY] + "...truncated..."


def parse_phones_payload(payload: Any) -> list[DeviceRecord]:
    """Anything other than {"data": [ {...}, ... ]} yields no devices."""
    if not isinstance(payload, dict):
        return []
    items = payload.get("data")
    if not isinstance(items, list):
        return []
    devices: list[DeviceRecord] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("skipping malformed device entry", entry_type=type(item).__name__)
            continue
        devices.append(DeviceRecord.from_payload(item))
    return devices


async def fetch_devices(client: httpx.AsyncClient, config: GatewayConfig) -> list[DeviceRecord]:
    url = config.phones_url
    logger.info("calling telerivet api", url=url)
    try:
        resp = await client.get(
            url,
            auth=(config.api_key, ""),
            timeout=config.timeout_seconds,
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        body = _response_body(exc.response)
        logger.error("telerivet request failed", status=exc.response.status_code, data=body)
        raise UpstreamFetchError(
            f"Telerivet responded with HTTP {exc.response.status_code}",
            status_code=exc.response.status_code,
            body=body,
        ) from exc
    except httpx.HTTPError as exc:
        msg = f"{type(exc).__name__}: {exc}"
        if config.api_key:
            msg = msg.replace(config.api_key, "<redacted>")
        logger.error("telerivet request failed", error=msg)
        raise UpstreamFetchError(msg) from exc

    try:
        payload = resp.json()
    except ValueError:
        payload = None
    return parse_phones_payload(payload)
