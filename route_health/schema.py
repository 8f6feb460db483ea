from __future__ import annotations

from pydantic import BaseModel, Field


class UnhealthyRoute(BaseModel):
    id: str | None = None
    name: str | None = None
    phone_number: str | None = None
    country: str | None = None
    app_version: str | None = None
    battery: int | float | None = None
    charging: bool | None = None
    last_active_time: int | float | None = None
    issues: list[str] = Field(..., min_length=1)


class RunResponse(BaseModel):
    status: str
    run_id: str
    total_routes: int = 0
    unhealthy_count: int = 0
    unhealthy_routes: list[UnhealthyRoute] | None = None
    error: str | None = None
