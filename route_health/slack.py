from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Sequence

import httpx
import structlog

from route_health.models import UnhealthyRecord
from route_health.owners import OwnerTable


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SlackConfig:
    bot_token: str
    channel_id: str
    api_base_url: str = "https://slack.com/api"
    timeout_seconds: float = 15.0


def format_mention(user_id: str | None) -> str:
    return f"<@{user_id}> " if user_id else ""


def format_route_line(record: UnhealthyRecord, owners: OwnerTable) -> str:
    mention = format_mention(owners.resolve(record.name))
    phone = record.phone_number or "unknown"
    return f"• {mention}{record.label} ({phone}): {', '.join(record.issues)}"


def build_alert_message(records: Sequence[UnhealthyRecord], run_id: str, owners: OwnerTable) -> str:
    lines = [f"Route health check run_id={run_id}", "Unhealthy routes detected:"]
    lines.extend(format_route_line(r, owners) for r in records)
    return "\n".join(lines)


async def post_slack_message(client: httpx.AsyncClient, config: SlackConfig, text: str) -> tuple[bool, dict]:
    url = f"{config.api_base_url.rstrip('/')}/chat.postMessage"
    payload = {"channel": config.channel_id, "text": text}
    try:
        resp = await client.post(
            url,
            headers={"Authorization": f"Bearer {config.bot_token}"},
            json=payload,
            timeout=config.timeout_seconds,
        )
        data = resp.json()
        if not isinstance(data, dict):
            return False, {"ok": False, "error": f"unexpected response status={resp.status_code}"}
        return bool(data.get("ok")), data
    except Exception as e:
        msg = f"{type(e).__name__}: {e}"
        if config.bot_token:
            msg = msg.replace(config.bot_token, "<redacted>")
        return False, {"ok": False, "error": msg}


def redact_slack_response(data: dict) -> str:
    safe = {"ok": data.get("ok")}
    for k in ("ts", "channel", "error"):
        if data.get(k):
            safe[k] = data.get(k)
    return json.dumps(safe, ensure_ascii=False)


async def notify_unhealthy(
    client: httpx.AsyncClient,
    config: SlackConfig | None,
    records: Sequence[UnhealthyRecord],
    run_id: str,
    owners: OwnerTable,
) -> bool:
    if config is None or not config.bot_token or not config.channel_id:
        logger.warning("slack not configured; skipping slack alert")
        return False

    text = build_alert_message(records, run_id, owners)
    ok, resp = await post_slack_message(client, config, text)
    if ok:
        logger.info("slack alert sent", response=redact_slack_response(resp))
    else:
        logger.error("slack notification failed", response=redact_slack_response(resp))
    return ok
