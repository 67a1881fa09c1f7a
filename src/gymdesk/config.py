"""Environment-driven settings for GymDesk processes."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Read a boolean flag; unset means ``default``."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable, failing loudly on garbage."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Settings read from ``GYMDESK_*`` variables (and a ``.env`` file, if present)."""

    APP_NAME = "GymDesk"
    DB_FILENAME = "gymdesk.db"
    DEFAULT_CACHE_TTL_SECONDS = 30.0

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("GYMDESK_DEV_MODE", default=True)
        self.DATABASE_URL = os.getenv("GYMDESK_DATABASE_URL", self._build_sqlite_url())
        self.CACHE_TTL_SECONDS = _env_float(
            "GYMDESK_CACHE_TTL_SECONDS", self.DEFAULT_CACHE_TTL_SECONDS
        )
        self.OVERDUE_CHECK_HOUR = _env_int("GYMDESK_OVERDUE_CHECK_HOUR", 1)
        if self.CACHE_TTL_SECONDS <= 0:
            raise ValueError("GYMDESK_CACHE_TTL_SECONDS must be positive.")
        if not 0 <= self.OVERDUE_CHECK_HOUR <= 23:
            raise ValueError("GYMDESK_OVERDUE_CHECK_HOUR must be between 0 and 23.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("GYMDESK_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Keyword arguments for ``create_engine``, by database backend."""

        if self.DATABASE_URL.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {"pool_pre_ping": True}
