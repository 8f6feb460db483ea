from __future__ import annotations

from typing import Iterable

from route_health.models import DeviceRecord, UnhealthyRecord


CRITICAL_BATTERY_THRESHOLD = 20
WARNING_BATTERY_THRESHOLD = 30
# last_active_time is app check-in, not internet connectivity; any lag past this is reported.
STALE_AFTER_MINUTES = 1.0


def _fmt_percent(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def evaluate_device(device: DeviceRecord, now: float) -> tuple[str, ...]:
    """
    Returns the issues for one device, in rule order (staleness, then battery).
    `now` is a unix timestamp in seconds.
    """
    issues: list[str] = []

    if not device.last_active_time:
        issues.append("Never reported active")
    else:
        minutes_ago = (float(now) - float(device.last_active_time)) / 60.0
        if minutes_ago > STALE_AFTER_MINUTES:
            issues.append(f"Last active {minutes_ago:.1f} minutes ago")

    battery = device.battery
    if battery is not None:
        if battery < CRITICAL_BATTERY_THRESHOLD:
            issues.append(f"Critical battery level ({_fmt_percent(battery)}%)")
        elif battery < WARNING_BATTERY_THRESHOLD and device.charging is False:
            issues.append(f"Battery low and not charging ({_fmt_percent(battery)}%)")

    return tuple(issues)


def classify_devices(devices: Iterable[DeviceRecord], *, now: float, run_id: str) -> list[UnhealthyRecord]:
    out: list[UnhealthyRecord] = []
    for device in devices:
        issues = evaluate_device(device, now)
        if issues:
            out.append(UnhealthyRecord.from_device(device, issues, run_id=run_id))
    return out


def is_managed(device: DeviceRecord, flag: str) -> bool:
    return device.vars.get(flag) is True


def filter_managed(devices: Iterable[DeviceRecord], flag: str) -> list[DeviceRecord]:
    return [d for d in devices if is_managed(d, flag)]
