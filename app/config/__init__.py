"""Upgrade configuration loaded from JSON resources."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping

from services.os_upgrade.constants import (
    CONFIG_PATH_ENV,
    DEFAULT_COMPAT_REPORT_DIRS,
    DEFAULT_INSTALLER_LOG_DIR,
    DEFAULT_STAGING_DIR,
    DEFAULT_STATUS_LOG,
)
from shared.logging_config import LogVerbosity

_CONFIG_RESOURCE = "upgrade.json"
_UPGRADE_CONFIG_CACHE: UpgradeConfig | None = None


@dataclass(frozen=True)
class PathsConfig:
    """Fixed locations used by an upgrade run."""

    staging_dir: Path
    source: Path
    status_log: Path
    installer_log_dir: Path
    compat_report_dirs: tuple[Path, ...]


@dataclass(frozen=True)
class UpdatesConfig:
    """Whether to apply pending updates before launching setup."""

    enabled: bool
    include_drivers: bool


@dataclass(frozen=True)
class UpgradeConfig:
    paths: PathsConfig
    updates: UpdatesConfig
    log_verbosity: LogVerbosity


def get_upgrade_config() -> UpgradeConfig:
    """Return the cached upgrade configuration."""

    global _UPGRADE_CONFIG_CACHE
    if _UPGRADE_CONFIG_CACHE is None:
        _UPGRADE_CONFIG_CACHE = load_upgrade_config()
    return _UPGRADE_CONFIG_CACHE


def reset_upgrade_config_cache() -> None:
    global _UPGRADE_CONFIG_CACHE
    _UPGRADE_CONFIG_CACHE = None


def load_upgrade_config(path: str | Path | None = None) -> UpgradeConfig:
    """Load configuration from ``path``, ``$OS_UPGRADE_CONFIG`` or the bundled resource."""

    data = _read_config_data(path)
    paths = _parse_paths_section(data.get("paths"))
    updates = _parse_updates_section(data.get("updates"))
    logging_section = data.get("logging")
    verbosity = _coerce_verbosity(
        logging_section.get("verbosity") if isinstance(logging_section, Mapping) else None
    )
    return UpgradeConfig(paths=paths, updates=updates, log_verbosity=verbosity)


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is None:
        override = os.environ.get(CONFIG_PATH_ENV)
        if override:
            path = override
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8-sig")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _parse_paths_section(section: Any) -> PathsConfig:
    if not isinstance(section, Mapping):
        section = {}
    staging_dir = _coerce_path(section.get("staging_dir"), default=DEFAULT_STAGING_DIR)
    source = _coerce_path(section.get("source"), default=str(staging_dir))
    status_log = _coerce_path(section.get("status_log"), default=DEFAULT_STATUS_LOG)
    installer_log_dir = _coerce_path(
        section.get("installer_log_dir"), default=DEFAULT_INSTALLER_LOG_DIR
    )
    raw_dirs = section.get("compat_report_dirs")
    if isinstance(raw_dirs, list) and all(isinstance(item, str) and item.strip() for item in raw_dirs):
        compat_dirs = tuple(Path(item) for item in raw_dirs)
    else:
        compat_dirs = tuple(Path(item) for item in DEFAULT_COMPAT_REPORT_DIRS)
    return PathsConfig(
        staging_dir=staging_dir,
        source=source,
        status_log=status_log,
        installer_log_dir=installer_log_dir,
        compat_report_dirs=compat_dirs,
    )


def _parse_updates_section(section: Any) -> UpdatesConfig:
    if not isinstance(section, Mapping):
        return UpdatesConfig(enabled=True, include_drivers=False)
    enabled = _coerce_bool(section.get("enabled"), default=True)
    include_drivers = _coerce_bool(section.get("include_drivers"), default=False)
    return UpdatesConfig(enabled=enabled, include_drivers=include_drivers)


def _coerce_path(value: Any, *, default: str) -> Path:
    if isinstance(value, str) and value.strip():
        return Path(value.strip())
    return Path(default)


def _coerce_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return default


def _coerce_verbosity(value: Any) -> LogVerbosity:
    if isinstance(value, str):
        try:
            return LogVerbosity(value.strip().lower())
        except ValueError:
            pass
    return LogVerbosity.INFO


__all__ = [
    "PathsConfig",
    "UpdatesConfig",
    "UpgradeConfig",
    "get_upgrade_config",
    "load_upgrade_config",
    "reset_upgrade_config_cache",
]
