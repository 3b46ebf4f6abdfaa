# vaultdrop/config.py

import os
from dataclasses import dataclass, field
from datetime import timedelta

# =========================
# DEFAULTS
# =========================

PRODUCTION_BASE_URL = "https://vaultdrop.app"
DEVELOPMENT_BASE_URL = "http://localhost:3000"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def database_url_from_env() -> str:
    """Full URL wins; otherwise assemble a PostgreSQL URL from the DB_* parts."""
    url = os.getenv("VAULTDROP_DATABASE_URL")
    if url:
        return url

    user = os.getenv("DB_USER", "vaultdrop")
    password = os.getenv("DB_PASS", "")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "vaultdrop")
    sslmode = os.getenv("DB_SSLMODE", "prefer")

    # No password on a local database is fine
    credentials = f"{user}:{password}" if password else user
    return f"postgresql://{credentials}@{host}:{port}/{name}?sslmode={sslmode}"


@dataclass
class Settings:
    database_url: str = "sqlite:///./vaultdrop.db"
    host: str = "127.0.0.1"
    port: int = 4000
    environment: str = "production"
    base_url: str = PRODUCTION_BASE_URL

    message_ttl: timedelta = timedelta(days=30)
    reaper_interval_seconds: float = 300.0

    rate_capacity: int = 3
    rate_refill_per_second: float = 1.0
    visitor_idle_seconds: float = 180.0
    visitor_gc_interval_seconds: float = 60.0

    route_limit: str = "10/second"
    route_limit_enabled: bool = True

    shutdown_grace_seconds: float = 5.0
    # Upper bound on a single database statement, so a stuck query fails the request
    request_timeout_seconds: float = 30.0

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    email_username: str = ""
    email_password: str = ""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    log_level: str = "INFO"
    error_log: str | None = None

    # Background tasks are off for short-lived app instances (tests, scripts)
    run_background_tasks: bool = True

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.email_username and self.email_password)

    @classmethod
    def from_env(cls) -> "Settings":
        environment = os.getenv("VAULTDROP_ENV", "production")
        default_base = DEVELOPMENT_BASE_URL if environment == "development" else PRODUCTION_BASE_URL
        origins = os.getenv("VAULTDROP_CORS_ORIGINS", "*")

        return cls(
            database_url=database_url_from_env(),
            host=os.getenv("VAULTDROP_HOST", "127.0.0.1"),
            port=int(os.getenv("VAULTDROP_PORT", "4000")),
            environment=environment,
            base_url=os.getenv("VAULTDROP_BASE_URL", default_base).rstrip("/"),
            message_ttl=timedelta(days=float(os.getenv("VAULTDROP_MESSAGE_TTL_DAYS", "30"))),
            reaper_interval_seconds=float(os.getenv("VAULTDROP_REAPER_INTERVAL_SECONDS", "300")),
            rate_capacity=int(os.getenv("VAULTDROP_RATE_CAPACITY", "3")),
            rate_refill_per_second=float(os.getenv("VAULTDROP_RATE_REFILL_PER_SECOND", "1.0")),
            visitor_idle_seconds=float(os.getenv("VAULTDROP_VISITOR_IDLE_SECONDS", "180")),
            visitor_gc_interval_seconds=float(os.getenv("VAULTDROP_VISITOR_GC_INTERVAL_SECONDS", "60")),
            route_limit=os.getenv("VAULTDROP_ROUTE_LIMIT", "10/second"),
            route_limit_enabled=_env_bool("VAULTDROP_ROUTE_LIMIT_ENABLED", "1"),
            shutdown_grace_seconds=float(os.getenv("VAULTDROP_SHUTDOWN_GRACE_SECONDS", "5")),
            request_timeout_seconds=float(os.getenv("VAULTDROP_REQUEST_TIMEOUT_SECONDS", "30")),
            smtp_host=os.getenv("VAULTDROP_SMTP_HOST", "smtp.gmail.com"),
            smtp_port=int(os.getenv("VAULTDROP_SMTP_PORT", "587")),
            email_username=os.getenv("VAULTDROP_EMAIL_USERNAME", ""),
            email_password=os.getenv("VAULTDROP_EMAIL_PASSWORD", ""),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            error_log=os.getenv("VAULTDROP_ERROR_LOG") or None,
        )
