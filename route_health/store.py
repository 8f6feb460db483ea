from __future__ import annotations

import uuid
from typing import Any, Sequence

import structlog
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import URL, Engine

from route_health.models import PersistReport, UnhealthyRecord
from route_health.settings import CheckerSettings


logger = structlog.get_logger(__name__)

UNKNOWN_ROUTE_PREFIX = "unknown-"

metadata = MetaData()

# Mirrors schemas/tables.sql. SQLite only autoincrements INTEGER primary keys.
unhealthy_routes_log = Table(
    "unhealthy_routes_log",
    metadata,
    Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),
    Column("run_id", String(64), nullable=False),
    Column("route_id", String(64), nullable=False),
    Column("route_name", String(255)),
    Column("phone_number", String(64)),
    Column("country", String(64)),
    Column("app_version", String(64)),
    Column("battery", Integer),
    Column("charging", Boolean),
    Column("last_active_time", BigInteger),
    Column("issues", JSON().with_variant(JSONB(), "postgresql"), nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)


def build_database_url(settings: CheckerSettings) -> str | URL | None:
    if settings.database_url:
        return settings.database_url
    if not settings.db_host:
        return None
    return URL.create(
        "postgresql+psycopg",
        username=settings.db_user or None,
        password=settings.db_password or None,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name or None,
        # DB_SSL=true: encrypted but the server certificate is not verified.
        query={"sslmode": "require"} if settings.db_ssl else {},
    )


def create_store_engine(settings: CheckerSettings) -> Engine | None:
    url = build_database_url(settings)
    if url is None:
        return None
    return create_engine(url, pool_pre_ping=True)


def ensure_schema(engine: Engine) -> None:
    metadata.create_all(engine, tables=[unhealthy_routes_log])


def placeholder_route_id() -> str:
    return f"{UNKNOWN_ROUTE_PREFIX}{uuid.uuid4()}"


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def build_row(record: UnhealthyRecord, run_id: str) -> dict[str, Any]:
    return {
        "run_id": run_id,
        "route_id": record.id or placeholder_route_id(),
        "route_name": record.name or None,
        "phone_number": record.phone_number or None,
        "country": record.country or None,
        "app_version": record.app_version or None,
        "battery": _to_int(record.battery),
        "charging": record.charging if isinstance(record.charging, bool) else None,
        "last_active_time": _to_int(record.last_active_time),
        "issues": list(record.issues),
    }


def persist_unhealthy(engine: Engine, records: Sequence[UnhealthyRecord], run_id: str) -> PersistReport:
    """
    Best-effort append of one row per record.

    Each insert runs in its own transaction on a single pooled connection, so a bad row
    does not roll back the others. Never raises.
    """
    if not records:
        return PersistReport()

    inserted = 0
    failed = 0
    stmt = unhealthy_routes_log.insert()
    try:
        with engine.connect() as conn:
            for record in records:
                try:
                    row = build_row(record, run_id)
                    with conn.begin():
                        conn.execute(stmt, row)
                    inserted += 1
                except Exception as exc:
                    failed += 1
                    logger.error(
                        "db insert failed for route",
                        route_id=record.id,
                        route_name=record.name,
                        error=f"{type(exc).__name__}: {exc}",
                    )
    except Exception as exc:
        logger.error("db insert batch failed", error=f"{type(exc).__name__}: {exc}")
        failed = len(records) - inserted

    logger.info("unhealthy routes persisted", inserted=inserted, failed=failed)
    return PersistReport(inserted=inserted, failed=failed)


def fetch_logged_rows(engine: Engine, *, run_id: str | None = None) -> list[dict[str, Any]]:
    query = unhealthy_routes_log.select().order_by(unhealthy_routes_log.c.id)
    if run_id is not None:
        query = query.where(unhealthy_routes_log.c.run_id == run_id)
    with engine.connect() as conn:
        return [dict(r._mapping) for r in conn.execute(query)]
