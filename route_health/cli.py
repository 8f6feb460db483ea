from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from typing import TextIO

import structlog

from route_health.logs import configure_logging
from route_health.models import RunOutcome, RunStatus
from route_health.pipeline import PipelineContext, build_context, run_health_check
from route_health.settings import CheckerSettings, ConfigError
from route_health.store import ensure_schema


logger = structlog.get_logger(__name__)

BANNER = "=" * 36


def print_summary(outcome: RunOutcome, out: TextIO) -> None:
    print(f"\n{BANNER}", file=out)
    print("ROUTE HEALTH SUMMARY", file=out)
    print(BANNER, file=out)
    print(f"Run ID: {outcome.run_id}", file=out)

    if outcome.status is RunStatus.UPSTREAM_ERROR:
        print(outcome.error or "Failed to fetch routes.", file=out)
        return

    print(f"Total routes found: {outcome.total_routes}", file=out)
    if not outcome.unhealthy:
        print("All routes are healthy.", file=out)
        return

    print(f"Unhealthy routes: {outcome.unhealthy_count}", file=out)
    print(json.dumps([r.to_dict() for r in outcome.unhealthy], indent=2, ensure_ascii=False), file=out)
    if outcome.status is RunStatus.DEGRADED:
        print(
            f"Degraded run: persisted={outcome.persisted} persist_failures={outcome.persist_failures} "
            f"notified={outcome.notified}",
            file=out,
        )


async def run_once(ctx: PipelineContext, *, create_tables: bool = False) -> RunOutcome:
    try:
        if create_tables and ctx.engine is not None:
            await asyncio.to_thread(ensure_schema, ctx.engine)
        return await run_health_check(ctx)
    finally:
        if ctx.engine is not None:
            ctx.engine.dispose()


def main(argv: list[str] | None = None, *, context: PipelineContext | None = None, out: TextIO | None = None) -> int:
    parser = argparse.ArgumentParser(description="Telerivet route health check (one-shot)")
    parser.add_argument(
        "--managed-only",
        action="store_true",
        help="Only check routes whose management flag variable is true",
    )
    parser.add_argument("--owners", default=None, help="Path to the route owner table (JSON/YAML)")
    parser.add_argument("--log-level", default=None, help="Logging level (INFO, WARNING, ...)")
    args = parser.parse_args(argv)

    settings = CheckerSettings()
    configure_logging(args.log_level or settings.log_level)
    out = out or sys.stdout

    try:
        if context is None:
            settings.require_gateway_credentials()
            if args.owners:
                settings = replace(settings, owners_path=args.owners)
            context = build_context(settings, managed_only=bool(args.managed_only))
        outcome = asyncio.run(run_once(context, create_tables=settings.create_tables))
    except ConfigError as exc:
        logger.error("configuration error", error=str(exc))
        return 1
    except Exception:
        logger.exception("unexpected error")
        return 1

    print_summary(outcome, out)
    return 1 if outcome.status is RunStatus.UPSTREAM_ERROR else 0


if __name__ == "__main__":
    raise SystemExit(main())
