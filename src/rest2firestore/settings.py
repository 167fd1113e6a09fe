from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import logging
import os


DEFAULT_APP_ENV = "development"
DEFAULT_FIRESTORE_DATABASE = "(default)"
DEFAULT_LOG_LEVEL = "INFO"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class SettingsError(ValueError):
    """Raised when settings values are invalid."""


@dataclass(frozen=True)
class AppSettings:
    app_env: str
    firestore_project_id: str
    firestore_database: str
    log_level: str
    ignore_invalid_delete_path: bool
    api_allowed_uids: frozenset[str] | None = None

    @property
    def log_level_value(self) -> int:
        return logging.getLevelName(self.log_level)


def _read_dotenv(dotenv_path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    if not dotenv_path.exists():
        return values

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key:
            values[key] = value
    return values


def _get_str(values: Mapping[str, str], key: str, default: str) -> str:
    value = values.get(key, default).strip()
    if not value:
        raise SettingsError(f"{key} must not be empty.")
    return value


def _get_optional_str(values: Mapping[str, str], key: str) -> str:
    return values.get(key, "").strip()


def _get_bool(values: Mapping[str, str], key: str, default: bool) -> bool:
    raw_value = values.get(key)
    if raw_value is None or raw_value.strip() == "":
        return default
    normalized = raw_value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise SettingsError(f"{key} must be boolean: {raw_value}")


def _get_log_level(values: Mapping[str, str], key: str, default: str) -> str:
    value = _get_str(values, key, default).upper()
    if value not in LOG_LEVELS:
        raise SettingsError(f"{key} must be one of {', '.join(LOG_LEVELS)}: {value}")
    return value


def _get_csv_set(values: Mapping[str, str], key: str) -> frozenset[str] | None:
    raw_value = values.get(key, "").strip()
    if not raw_value:
        return None
    items = frozenset(item.strip() for item in raw_value.split(",") if item.strip())
    return items or None


def load_settings(
    *,
    env: Mapping[str, str] | None = None,
    dotenv_path: str | Path = ".env",
) -> AppSettings:
    """Load settings from .env and environment variables.

    Priority: OS environment > .env > default.
    """

    env_values = dict(env) if env is not None else dict(os.environ)
    dotenv_values = _read_dotenv(Path(dotenv_path))
    merged: dict[str, str] = {**dotenv_values, **env_values}

    return AppSettings(
        app_env=_get_str(merged, "APP_ENV", DEFAULT_APP_ENV),
        firestore_project_id=_get_optional_str(merged, "FIRESTORE_PROJECT_ID"),
        firestore_database=_get_str(merged, "FIRESTORE_DATABASE", DEFAULT_FIRESTORE_DATABASE),
        log_level=_get_log_level(merged, "LOG_LEVEL", DEFAULT_LOG_LEVEL),
        ignore_invalid_delete_path=_get_bool(merged, "DELETE_IGNORE_INVALID_PATH", False),
        api_allowed_uids=_get_csv_set(merged, "API_ALLOWED_UIDS"),
    )


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level_value,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
