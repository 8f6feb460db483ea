from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s else None


def _opt_number(value: Any) -> int | float | None:
    # bool is an int subclass; a boolean battery is not a measurement.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        finite = math.isfinite(value)
    except OverflowError:
        return None
    return value if finite else None


def _opt_timestamp(value: Any) -> int | float | None:
    if isinstance(value, str) and value.strip():
        try:
            value = float(value)
        except ValueError:
            return None
        if math.isfinite(value) and value.is_integer():
            value = int(value)
    return _opt_number(value)


@dataclass(frozen=True)
class DeviceRecord:
    """One phone/route as reported by the gateway. Never mutated."""

    id: str | None
    name: str | None
    phone_number: str | None = None
    country: str | None = None
    app_version: str | None = None
    battery: int | float | None = None
    charging: bool | None = None
    last_active_time: int | float | None = None
    vars: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, raw: dict[str, Any]) -> "DeviceRecord":
        charging = raw.get("charging")
        custom_vars = raw.get("vars")
        return cls(
            id=_opt_str(raw.get("id")),
            name=_opt_str(raw.get("name")),
            phone_number=_opt_str(raw.get("phone_number")),
            country=_opt_str(raw.get("country")),
            app_version=_opt_str(raw.get("app_version")),
            battery=_opt_number(raw.get("battery")),
            charging=charging if isinstance(charging, bool) else None,
            last_active_time=_opt_timestamp(raw.get("last_active_time")),
            vars=dict(custom_vars) if isinstance(custom_vars, dict) else {},
        )


@dataclass(frozen=True)
class UnhealthyRecord:
    id: str | None
    name: str | None
    phone_number: str | None
    country: str | None
    app_version: str | None
    battery: int | float | None
    charging: bool | None
    last_active_time: int | float | None
    issues: tuple[str, ...]
    run_id: str

    def __post_init__(self) -> None:
        if not self.issues:
            raise ValueError("UnhealthyRecord requires at least one issue")

    @classmethod
    def from_device(cls, device: DeviceRecord, issues: tuple[str, ...], *, run_id: str) -> "UnhealthyRecord":
        return cls(
            id=device.id,
            name=device.name,
            phone_number=device.phone_number,
            country=device.country,
            app_version=device.app_version,
            battery=device.battery,
            charging=device.charging,
            last_active_time=device.last_active_time,
            issues=tuple(issues),
            run_id=run_id,
        )

    @property
    def label(self) -> str:
        return self.name or self.id or "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone_number": self.phone_number,
            "country": self.country,
            "app_version": self.app_version,
            "battery": self.battery,
            "charging": self.charging,
            "last_active_time": self.last_active_time,
            "issues": list(self.issues),
        }


class RunStatus(str, enum.Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UPSTREAM_ERROR = "upstream_error"
    ERROR = "error"


class Stage(str, enum.Enum):
    FETCHING = "fetching"
    FILTERING = "filtering"
    CLASSIFYING = "classifying"
    PERSISTING = "persisting"
    NOTIFYING = "notifying"
    DONE = "done"


@dataclass(frozen=True)
class PersistReport:
    inserted: int = 0
    failed: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class RunOutcome:
    status: RunStatus
    run_id: str
    total_routes: int = 0
    unhealthy: tuple[UnhealthyRecord, ...] = ()
    persisted: int = 0
    persist_failures: int = 0
    notified: bool = False
    error: str | None = None

    @property
    def unhealthy_count(self) -> int:
        return len(self.unhealthy)

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "status": self.status.value,
            "run_id": self.run_id,
            "total_routes": self.total_routes,
            "unhealthy_count": self.unhealthy_count,
        }
        if self.unhealthy:
            body["unhealthy_routes"] = [r.to_dict() for r in self.unhealthy]
        if self.error:
            body["error"] = self.error
        return body
