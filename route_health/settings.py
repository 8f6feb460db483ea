from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


DEFAULT_OWNERS_PATH = str(Path(__file__).with_name("route_owners.json"))


class ConfigError(RuntimeError):
    pass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    s = str(raw).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return int(default)
    try:
        return int(str(raw).strip())
    except Exception:
        return int(default)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return str(default)
    s = str(raw).strip()
    return s if s else str(default)


@dataclass(frozen=True)
class CheckerSettings:
    # Telerivet gateway.
    api_key: str = field(default_factory=lambda: _env_str("TELERIVET_API_KEY", ""))
    project_id: str = field(default_factory=lambda: _env_str("TELERIVET_PROJECT_ID", ""))
    api_base_url: str = field(
        default_factory=lambda: _env_str("TELERIVET_API_BASE_URL", "https://api.telerivet.com/v1")
    )

    # Durable store. DATABASE_URL wins over the DB_* fields when both are set.
    database_url: str = field(default_factory=lambda: _env_str("DATABASE_URL", ""))
    db_host: str = field(default_factory=lambda: _env_str("DB_HOST", ""))
    db_user: str = field(default_factory=lambda: _env_str("DB_USER", ""))
    db_password: str = field(default_factory=lambda: os.getenv("DB_PASS", ""))
    db_name: str = field(default_factory=lambda: _env_str("DB_NAME", ""))
    db_port: int = field(default_factory=lambda: _env_int("DB_PORT", 5432))
    db_ssl: bool = field(default_factory=lambda: _env_bool("DB_SSL", False))
    # Create the log table on startup (SQLite / local development).
    create_tables: bool = field(default_factory=lambda: _env_bool("DB_CREATE_TABLES", False))

    # Slack alerting.
    slack_bot_token: str = field(default_factory=lambda: _env_str("SLACK_BOT_TOKEN", ""))
    slack_channel_id: str = field(default_factory=lambda: _env_str("SLACK_CHANNEL_ID", ""))
    slack_api_base_url: str = field(default_factory=lambda: _env_str("SLACK_API_BASE_URL", "https://slack.com/api"))

    # Routes.
    owners_path: str = field(default_factory=lambda: _env_str("ROUTE_OWNERS_PATH", DEFAULT_OWNERS_PATH))
    managed_flag: str = field(default_factory=lambda: _env_str("ROUTE_MANAGED_FLAG", "dsl_managed"))

    # HTTP trigger.
    host: str = field(default_factory=lambda: _env_str("ROUTE_HEALTH_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("ROUTE_HEALTH_PORT", 8080))
    log_level: str = field(default_factory=lambda: _env_str("LOG_LEVEL", "INFO"))

    @property
    def store_configured(self) -> bool:
        return bool(self.database_url or self.db_host)

    @property
    def slack_configured(self) -> bool:
        return bool(self.slack_bot_token and self.slack_channel_id)

    def require_gateway_credentials(self) -> None:
        missing = [
            name
            for name, value in (("TELERIVET_API_KEY", self.api_key), ("TELERIVET_PROJECT_ID", self.project_id))
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing {' or '.join(missing)} environment variables.")
