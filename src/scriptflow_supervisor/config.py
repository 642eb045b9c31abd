"""Environment configuration.

Every setting is read from a `SCRIPTFLOW_*` variable; bad values raise
ValueError naming the variable.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

STORE_BACKENDS = ("memory", "jsonl", "sqlite")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class SupervisorConfig:
    log_level: str = "INFO"
    store: str = "memory"
    log_path: Path = Path("./data/system_logs.jsonl")
    db_path: Path = Path("./data/scriptflow.db")
    timezone: tzinfo = UTC
    page_size: int = 50
    alert_interval_seconds: float = 60.0
    alert_sample_size: int = 5
    email_webhook_url: str | None = None
    email_timeout_seconds: float = 10.0
    redact_email: bool = True


def _int_env(env: Mapping[str, str], name: str, default: int, *, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be true or false")


def _timezone_env(env: Mapping[str, str], name: str) -> tzinfo:
    raw = (env.get(name) or "UTC").strip()
    if raw.upper() == "UTC":
        return UTC
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"{name} is not a known IANA time zone: {raw!r}") from exc


def _store_env(env: Mapping[str, str], name: str) -> str:
    value = (env.get(name) or "memory").strip().lower()
    if value not in STORE_BACKENDS:
        allowed = ", ".join(STORE_BACKENDS)
        raise ValueError(f"{name} must be one of: {allowed}")
    return value


def load_config(env: Mapping[str, str] | None = None) -> SupervisorConfig:
    """Build a SupervisorConfig from `env` (defaults to os.environ)."""
    env = os.environ if env is None else env
    webhook = (env.get("SCRIPTFLOW_EMAIL_WEBHOOK_URL") or "").strip() or None
    return SupervisorConfig(
        log_level=(env.get("SCRIPTFLOW_LOG_LEVEL") or "INFO").strip().upper(),
        store=_store_env(env, "SCRIPTFLOW_STORE"),
        log_path=Path(env.get("SCRIPTFLOW_LOG_PATH") or "./data/system_logs.jsonl"),
        db_path=Path(env.get("SCRIPTFLOW_DB_PATH") or "./data/scriptflow.db"),
        timezone=_timezone_env(env, "SCRIPTFLOW_TIMEZONE"),
        page_size=_int_env(env, "SCRIPTFLOW_PAGE_SIZE", 50, minimum=1),
        alert_interval_seconds=_float_env(env, "SCRIPTFLOW_ALERT_INTERVAL_SECONDS", 60.0),
        alert_sample_size=_int_env(env, "SCRIPTFLOW_ALERT_SAMPLE_SIZE", 5, minimum=0),
        email_webhook_url=webhook,
        email_timeout_seconds=_float_env(env, "SCRIPTFLOW_EMAIL_TIMEOUT_SECONDS", 10.0),
        redact_email=_bool_env(env, "SCRIPTFLOW_REDACT_EMAIL", True),
    )


def configure_logging(level_name: str | None = None) -> None:
    """Configure root logging on stderr; stdout stays free for the stdio transport."""
    level_name = (level_name or os.getenv("SCRIPTFLOW_LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
