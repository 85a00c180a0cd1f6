"""
Configuration for the Roadwatch backend.

Infrastructure settings (database, document store, duplicate window) are
loaded once from environment variables or a `.env` file. Runtime toggles
that tests and operators flip without restarting the process are read
through small helpers at call time.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from pathlib import Path
from dotenv import load_dotenv
import logging
import os

ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(ENV_PATH, override=False)


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # SQL document store. Default is a local SQLite file for development.
    database_url: str = "sqlite+pysqlite:///./roadwatch.db"
    # "sql" or "mongo"
    storage_backend: str = "sql"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "roadwatch"
    # Duplicate suppression
    dedup_window_ms: int = 10_000
    dedup_ttl_ms: int = 30_000
    dedup_capacity: int = 100
    dedup_sliding_window: bool = False
    dedup_bucket: str = "hour"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()


def _env_true(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes"}


def get_app_env() -> str:
    raw = os.getenv("ROADWATCH_ENV") or os.getenv("APP_ENV") or "dev"
    env = raw.strip().lower()
    if env not in {"dev", "prod"}:
        logging.getLogger("config").warning("Unknown ROADWATCH_ENV=%s; defaulting to dev", raw)
        env = "dev"
    return env


def auth_disabled() -> bool:
    return _env_true("ROADWATCH_AUTH_DISABLED", "true")


def bus_log_policy() -> str:
    """Return how `/logs` treats bus detections: ``separate`` or ``merge``."""
    raw = (os.getenv("BUS_LOG_POLICY") or "separate").strip().lower()
    if raw not in {"separate", "merge"}:
        logging.getLogger("config").warning("Unknown BUS_LOG_POLICY=%s; using separate", raw)
        return "separate"
    return raw


def auto_create_db() -> bool:
    return _env_true("AUTO_CREATE_DB", "true")


def auto_cleanup_incomplete() -> bool:
    return _env_true("AUTO_CLEANUP_INCOMPLETE", "false")


def validate_runtime_settings() -> None:
    env = get_app_env()
    logger = logging.getLogger("config")

    jwt_secret = (os.getenv("ROADWATCH_JWT_SECRET") or "").strip()
    if env == "prod":
        if auth_disabled():
            raise RuntimeError("ROADWATCH_AUTH_DISABLED must be false in prod.")
        if len(jwt_secret) < 20:
            raise RuntimeError("ROADWATCH_JWT_SECRET must be set to a strong value in prod.")
        if settings.database_url.startswith("sqlite") and settings.storage_backend == "sql":
            logger.warning("SQLite document store in prod. Consider PostgreSQL or STORAGE_BACKEND=mongo.")
        if auto_create_db():
            logger.warning("AUTO_CREATE_DB is enabled in prod. Consider setting it to false.")
    else:
        if not auth_disabled() and len(jwt_secret) < 20:
            logger.warning("ROADWATCH_JWT_SECRET is weak or missing; dev fallback will be used.")

    if settings.storage_backend not in {"sql", "mongo"}:
        raise RuntimeError(f"Unsupported STORAGE_BACKEND={settings.storage_backend}")
    if settings.dedup_bucket not in {"hour", "minute"}:
        logger.warning("Unknown DEDUP_BUCKET=%s; hour buckets will be used.", settings.dedup_bucket)


validate_runtime_settings()
