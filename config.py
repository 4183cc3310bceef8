# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

ENV_PATH = Path(__file__).resolve().parent / ".env"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def load_env_file(path: Path = ENV_PATH) -> None:
    """Load .env next to config.py; already-set environment variables win."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class SchedulingConfig:
    match_setup_enabled: bool = True
    default_venues: tuple[str, ...] = field(default_factory=tuple)
    default_matches_per_day: int | None = None


@dataclass(frozen=True)
class BotConfig:
    token: str
    dev_guild_id: int | None
    default_announce_channel_id: int | None
    command_prefix: str
    log_level: str
    mysql: MySqlConfig
    scheduling: SchedulingConfig


def _getenv(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip()
    return v if v else default


def _int_or_none(value: str | None, var_name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _int(value: str | None, var_name: str, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{var_name} must be an integer, got: {value!r}") from e


def _bool(value: str | None, var_name: str, default: bool) -> bool:
    if value is None:
        return default
    v = value.lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValueError(f"{var_name} must be a boolean (true/false), got: {value!r}")


def _csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def load_scheduling_config() -> SchedulingConfig:
    per_day = _int_or_none(_getenv("DEFAULT_MATCHES_PER_DAY"), "DEFAULT_MATCHES_PER_DAY")
    if per_day is not None and per_day < 1:
        raise ValueError("DEFAULT_MATCHES_PER_DAY must be >= 1")
    return SchedulingConfig(
        match_setup_enabled=_bool(_getenv("MATCH_SETUP_ENABLED"), "MATCH_SETUP_ENABLED", True),
        default_venues=_csv(_getenv("DEFAULT_VENUES")),
        default_matches_per_day=per_day,
    )


def load_config() -> BotConfig:
    load_env_file()

    token = (_getenv("DISCORD_TOKEN") or "").strip()
    if not token:
        raise RuntimeError("Missing DISCORD_TOKEN environment variable.")

    dev_guild_id = _int_or_none(_getenv("DEV_GUILD_ID"), "DEV_GUILD_ID")
    default_announce_channel_id = _int_or_none(_getenv("ANNOUNCE_CHANNEL_ID"), "ANNOUNCE_CHANNEL_ID")

    minsize = _int(_getenv("DB_POOL_MIN"), "DB_POOL_MIN", 1)
    maxsize = _int(_getenv("DB_POOL_MAX"), "DB_POOL_MAX", 5)
    if minsize < 1:
        raise ValueError("DB_POOL_MIN must be >= 1")
    if maxsize < minsize:
        raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")

    return BotConfig(
        token=token,
        dev_guild_id=dev_guild_id,
        default_announce_channel_id=default_announce_channel_id,
        command_prefix=_getenv("COMMAND_PREFIX", "!") or "!",
        log_level=(_getenv("LOG_LEVEL", "INFO") or "INFO").upper(),
        mysql=MySqlConfig(
            host=_getenv("DB_HOST", "127.0.0.1") or "127.0.0.1",
            port=_int(_getenv("DB_PORT"), "DB_PORT", 3306),
            user=_getenv("DB_USER", "root") or "root",
            password=_getenv("DB_PASSWORD", "") or "",
            database=_getenv("DB_NAME", "competitions") or "competitions",
            minsize=minsize,
            maxsize=maxsize,
            connect_timeout=_int(_getenv("DB_CONNECT_TIMEOUT"), "DB_CONNECT_TIMEOUT", 10),
        ),
        scheduling=load_scheduling_config(),
    )
