from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import structlog
import yaml


logger = structlog.get_logger(__name__)


def _coerce_owner_map(raw: Any, *, source: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Owner table must be a mapping of route name to Slack user id: {source}")
    out: dict[str, str] = {}
    for name, user_id in raw.items():
        if not isinstance(name, str) or not name:
            raise ValueError(f"Invalid route name {name!r} in owner table {source}")
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValueError(f"Invalid Slack user id for {name!r} in owner table {source}")
        out[name] = user_id.strip()
    return out


@dataclass(frozen=True)
class OwnerTable:
    """Route display name -> Slack user id. Loaded once, read-only afterwards."""

    owners: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "owners", MappingProxyType(dict(self.owners)))

    def resolve(self, name: str | None) -> str | None:
        if not name:
            return None
        return self.owners.get(name)

    def __len__(self) -> int:
        return len(self.owners)

    @classmethod
    def load(cls, path: str | Path) -> "OwnerTable":
        # JSON is a YAML subset, so one loader covers both file flavours.
        p = Path(path)
        if not p.exists():
            logger.warning("route owner table not found; mentions disabled", path=str(p))
            return cls()
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
        table = cls(_coerce_owner_map(raw, source=str(p)))
        logger.info("route owner table loaded", path=str(p), owners=len(table))
        return table
