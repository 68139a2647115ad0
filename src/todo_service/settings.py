from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - SQLITE_DB_PATH: path to sqlite db file, or ':memory:'. Default './data/todos.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - USER_API_HOST / USER_API_PORT: peer user service used for group membership checks
    - SESSION_COOKIE_NAME: cookie carrying the session id (default: session_id)
    - HTTP_TIMEOUT_SECONDS: overall timeout for peer requests (default: 60)
    - HTTP_RESPONSE_TIMEOUT_SECONDS: read timeout waiting for the peer's response (default: 10)
    - LOG_LEVEL: root log level (default: INFO)
    - PORT: port the service binds to (default: 8082)
    """

    sqlite_db_path: str
    cors_allow_origins: List[str]
    user_api_host: str
    user_api_port: int
    session_cookie_name: str
    http_timeout_seconds: float
    http_response_timeout_seconds: float
    log_level: str
    port: int


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return default


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value.strip())
    except ValueError:
        return default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return Settings(
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        user_api_host=_get_env("USER_API_HOST", "localhost").strip(),
        user_api_port=_parse_int(_get_env("USER_API_PORT", "8080"), 8080),
        session_cookie_name=_get_env("SESSION_COOKIE_NAME", "session_id").strip(),
        http_timeout_seconds=_parse_float(_get_env("HTTP_TIMEOUT_SECONDS", "60"), 60.0),
        http_response_timeout_seconds=_parse_float(
            _get_env("HTTP_RESPONSE_TIMEOUT_SECONDS", "10"), 10.0
        ),
        log_level=log_level,
        port=_parse_int(_get_env("PORT", "8082"), 8082),
    )
