from __future__ import annotations

import asyncio
import json
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable

import httpx
import structlog
from sqlalchemy.engine import Engine

from route_health.gateway import GatewayConfig, UpstreamFetchError, fetch_devices
from route_health.health_rules import classify_devices, filter_managed
from route_health.models import PersistReport, RunOutcome, RunStatus, Stage, UnhealthyRecord
from route_health.owners import OwnerTable
from route_health.settings import CheckerSettings
from route_health.slack import SlackConfig, notify_unhealthy
from route_health.store import create_store_engine, persist_unhealthy


logger = structlog.get_logger(__name__)


def new_run_id() -> str:
    return str(uuid.uuid4())


@dataclass
class PipelineContext:
    """Everything one run needs; built once per process and shared by reference."""

    gateway: GatewayConfig
    owners: OwnerTable = field(default_factory=OwnerTable)
    slack: SlackConfig | None = None
    engine: Engine | None = None
    managed_only: bool = False
    managed_flag: str = "dsl_managed"
    clock: Callable[[], float] = time.time


def build_context(
    settings: CheckerSettings,
    *,
    managed_only: bool,
    owners: OwnerTable | None = None,
    engine: Engine | None = None,
) -> PipelineContext:
    slack = None
    if settings.slack_configured:
        slack = SlackConfig(
            bot_token=settings.slack_bot_token,
            channel_id=settings.slack_channel_id,
            api_base_url=settings.slack_api_base_url,
        )
    return PipelineContext(
        gateway=GatewayConfig(
            api_key=settings.api_key,
            project_id=settings.project_id,
            base_url=settings.api_base_url,
        ),
        owners=owners if owners is not None else OwnerTable.load(settings.owners_path),
        slack=slack,
        engine=engine if engine is not None else create_store_engine(settings),
        managed_only=managed_only,
        managed_flag=settings.managed_flag,
    )


def _enter(stage: Stage, **kw) -> None:
    logger.info("stage", stage=stage.value, **kw)


async def _persist_stage(ctx: PipelineContext, unhealthy: list[UnhealthyRecord], run_id: str) -> PersistReport:
    if ctx.engine is None:
        logger.warning("database not configured; skipping persistence")
        return PersistReport(failed=len(unhealthy))
    try:
        return await asyncio.to_thread(persist_unhealthy, ctx.engine, unhealthy, run_id)
    except Exception:
        logger.exception("persist stage failed")
        return PersistReport(failed=len(unhealthy))


async def _notify_stage(
    ctx: PipelineContext, client: httpx.AsyncClient, unhealthy: list[UnhealthyRecord], run_id: str
) -> bool:
    try:
        return await notify_unhealthy(client, ctx.slack, unhealthy, run_id, ctx.owners)
    except Exception:
        logger.exception("notify stage failed")
        return False


async def _run(ctx: PipelineContext, client: httpx.AsyncClient, run_id: str) -> RunOutcome:
    _enter(Stage.FETCHING)
    try:
        devices = await fetch_devices(client, ctx.gateway)
    except UpstreamFetchError as exc:
        return RunOutcome(
            status=RunStatus.UPSTREAM_ERROR,
            run_id=run_id,
            error=f"Failed to fetch Telerivet routes: {exc}",
        )

    if ctx.managed_only:
        _enter(Stage.FILTERING, flag=ctx.managed_flag)
        devices = filter_managed(devices, ctx.managed_flag)
    logger.info("routes found", total_routes=len(devices), managed_only=ctx.managed_only)

    _enter(Stage.CLASSIFYING)
    unhealthy = classify_devices(devices, now=ctx.clock(), run_id=run_id)
    if not unhealthy:
        _enter(Stage.DONE, status=RunStatus.HEALTHY.value)
        logger.info("all routes are healthy")
        return RunOutcome(status=RunStatus.HEALTHY, run_id=run_id, total_routes=len(devices))

    logger.warning(
        "unhealthy routes detected",
        unhealthy_count=len(unhealthy),
        routes=json.dumps([r.to_dict() for r in unhealthy], ensure_ascii=False),
    )

    # Persist and notify are isolated: either may fail without stopping the other.
    _enter(Stage.PERSISTING)
    report = await _persist_stage(ctx, unhealthy, run_id)
    _enter(Stage.NOTIFYING)
    notified = await _notify_stage(ctx, client, unhealthy, run_id)

    status = RunStatus.UNHEALTHY if report.ok and notified else RunStatus.DEGRADED
    _enter(Stage.DONE, status=status.value)
    return RunOutcome(
        status=status,
        run_id=run_id,
        total_routes=len(devices),
        unhealthy=tuple(unhealthy),
        persisted=report.inserted,
        persist_failures=report.failed,
        notified=notified,
    )


async def run_health_check(ctx: PipelineContext, *, run_id: str | None = None) -> RunOutcome:
    """
    One end-to-end invocation: fetch -> (filter) -> classify -> persist -> notify.

    Upstream failures come back as an `upstream_error` outcome; anything unexpected
    propagates to the caller (trigger boundary).
    """
    run_id = run_id or new_run_id()
    with structlog.contextvars.bound_contextvars(run_id=run_id):
        logger.info("run started")
        async with httpx.AsyncClient() as client:
            return await _run(ctx, client, run_id)
