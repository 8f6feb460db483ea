from __future__ import annotations

import time
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from route_health.models import RunStatus
from route_health.pipeline import PipelineContext, build_context, new_run_id, run_health_check
from route_health.schema import RunResponse
from route_health.settings import CheckerSettings
from route_health.store import ensure_schema


logger = structlog.get_logger(__name__)


def create_app(settings: CheckerSettings | None = None, *, context: PipelineContext | None = None) -> FastAPI:
    app = FastAPI(title="Route Health Checker", version="0.1.0")
    app.state.settings = settings or CheckerSettings()
    # Credentials are not pre-validated here; a missing key surfaces as an upstream failure.
    app.state.context = context or build_context(app.state.settings, managed_only=True)

    @app.on_event("startup")
    def _startup() -> None:
        engine = app.state.context.engine
        if engine is not None and app.state.settings.create_tables:
            ensure_schema(engine)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        engine = app.state.context.engine
        if engine is not None:
            engine.dispose()

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"ok": True, "ts": time.time()}

    @app.api_route("/", methods=["GET", "POST"])
    async def monitor_routes() -> JSONResponse:
        run_id = new_run_id()
        try:
            outcome = await run_health_check(app.state.context, run_id=run_id)
        except Exception:
            logger.exception("unexpected error", run_id=run_id)
            return JSONResponse(
                status_code=500,
                content={"status": RunStatus.ERROR.value, "run_id": run_id, "error": "Unexpected server error"},
            )

        status_code = 502 if outcome.status is RunStatus.UPSTREAM_ERROR else 200
        body = RunResponse.model_validate(outcome.to_response()).model_dump()
        content = {k: v for k, v in body.items() if v is not None}
        return JSONResponse(status_code=status_code, content=content)

    return app
