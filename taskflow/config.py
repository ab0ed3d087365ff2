"""Environment-driven configuration for TaskFlow.

Values are read from the process environment; a `.env` file in the working
directory is loaded first when present. Database settings are resolved lazily
by `database_url()` so a missing variable only aborts application startup,
not module import.
"""

from __future__ import annotations

import os
from typing import Dict, List

from dotenv import load_dotenv
from sqlalchemy.engine import URL

load_dotenv()

REQUIRED_DB_VARS = ("DB_HOST", "DB_USER", "DB_PASS", "DB_NAME")

APP_NAME = "TaskFlow API"
APP_ENV = os.getenv("APP_ENV", "development")
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTH_RATE_LIMIT = os.getenv("AUTH_RATE_LIMIT", "100 per 15 minutes")


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


def is_production() -> bool:
    return os.getenv("APP_ENV", APP_ENV).lower() == "production"


def cors_origins() -> List[str]:
    origins = os.getenv("CORS_ORIGINS", "*")
    if origins == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


def upload_dir() -> str:
    return os.getenv("UPLOAD_DIR", "uploads")


def database_url() -> str:
    """Return the SQLAlchemy URL for the relational store.

    `DATABASE_URL` wins when set. Otherwise the MySQL URL is assembled from
    the `DB_*` variables, all four of which are mandatory.
    """
    explicit = os.getenv("DATABASE_URL")
    if explicit:
        return explicit

    missing = [name for name in REQUIRED_DB_VARS if not os.getenv(name)]
    if missing:
        raise ConfigError(f"Missing database environment variables: {', '.join(missing)}")

    try:
        port = int(os.getenv("DB_PORT", "4000"))
    except ValueError as exc:
        raise ConfigError("DB_PORT must be an integer") from exc

    url = URL.create(
        "mysql+pymysql",
        username=os.environ["DB_USER"],
        password=os.environ["DB_PASS"],
        host=os.environ["DB_HOST"],
        port=port,
        database=os.environ["DB_NAME"],
        query={"charset": "utf8mb4"},
    )
    return url.render_as_string(hide_password=False)


def database_connect_args() -> Dict[str, object]:
    """Driver arguments for the production engine (TLS when `DB_SSL=true`)."""
    if os.getenv("DB_SSL", "false").lower() == "true":
        return {"ssl_verify_cert": True, "ssl_verify_identity": True}
    return {}


__all__ = [
    "APP_NAME",
    "APP_ENV",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "AUTH_RATE_LIMIT",
    "ConfigError",
    "is_production",
    "cors_origins",
    "upload_dir",
    "database_url",
    "database_connect_args",
]
