# src/syncprogress/core/app_config.py
"""
Per-user config persistence for syncprogress (platformdirs + JSON).

Persisted items (schema v1):
- run_local_node: bool          (whether a local node feeds the download phase)
- max_estimate_seconds: int     (longest gap between updates used for the ETA)
- log_level: str                (console log level)

Behavior:
- If config file missing or unreadable -> defaults are used
- If schema_version mismatches:
  - default: reset to defaults
  - optional: keep loaded but update version
- Optional "create_if_missing" flag to write defaults on first run
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from platformdirs import user_config_dir

from syncprogress.core.utils.logging import get_logger

logger = get_logger(__name__)

# Increment when you make a breaking change to the on-disk JSON schema.
SCHEMA_VERSION: int = 1

# Defaults
DEFAULT_RUN_LOCAL_NODE: bool = False
DEFAULT_MAX_ESTIMATE_SECONDS: int = 2 * 60 * 60
MAX_ESTIMATE_SECONDS_RANGE: tuple[int, int] = (1, 24 * 60 * 60)
DEFAULT_LOG_LEVEL: str = "INFO"
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _coerce_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "1", "yes", "on")
    if isinstance(raw, (int, float)):
        return bool(raw)
    return default


def _clamp_int(value: int, min_value: int, max_value: int) -> int:
    return max(min_value, min(max_value, value))


@dataclass
class SyncConfigData:
    """
    JSON-serializable config payload.

    Keep fields JSON-friendly (primitives only).
    """

    schema_version: int = SCHEMA_VERSION
    run_local_node: bool = DEFAULT_RUN_LOCAL_NODE
    max_estimate_seconds: int = DEFAULT_MAX_ESTIMATE_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL

    def to_json_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_json_dict(cls, d: Dict[str, Any]) -> "SyncConfigData":
        """
        Tolerant loader:
        - ignores unknown keys
        - tolerates partially missing or malformed values
        """
        schema_version = int(d.get("schema_version", -1))

        run_local_node = _coerce_bool(d.get("run_local_node", DEFAULT_RUN_LOCAL_NODE), DEFAULT_RUN_LOCAL_NODE)

        max_estimate_seconds = DEFAULT_MAX_ESTIMATE_SECONDS
        raw_max = d.get("max_estimate_seconds", DEFAULT_MAX_ESTIMATE_SECONDS)
        try:
            max_estimate_seconds = _clamp_int(int(raw_max), *MAX_ESTIMATE_SECONDS_RANGE)
        except (TypeError, ValueError):
            logger.warning(
                f"Invalid max_estimate_seconds {raw_max!r}, using default {DEFAULT_MAX_ESTIMATE_SECONDS}"
            )

        log_level = DEFAULT_LOG_LEVEL
        raw_level = d.get("log_level", DEFAULT_LOG_LEVEL)
        if isinstance(raw_level, str) and raw_level.upper() in LOG_LEVELS:
            log_level = raw_level.upper()
        else:
            logger.warning(f"Invalid log_level {raw_level!r}, using default '{DEFAULT_LOG_LEVEL}'")

        return cls(
            schema_version=schema_version,
            run_local_node=run_local_node,
            max_estimate_seconds=max_estimate_seconds,
            log_level=log_level,
        )


class SyncConfig:
    """
    Manager for loading/saving SyncConfigData to disk.
    """

    def __init__(self, *, path: Path, data: Optional[SyncConfigData] = None):
        self.path = path
        self.data = data if data is not None else SyncConfigData()

    # -----------------------------
    # Construction / persistence
    # -----------------------------
    @staticmethod
    def default_config_path(
        app_name: str = "syncprogress",
        filename: str = "sync_config.json",
        app_author: str | None = None,
    ) -> Path:
        """
        Determine OS-appropriate per-user config path.

        macOS:   ~/Library/Application Support/syncprogress/sync_config.json
        Linux:   ~/.config/syncprogress/sync_config.json
        Windows: %APPDATA%\\syncprogress\\sync_config.json
        """
        d = Path(user_config_dir(app_name, app_author))
        d.mkdir(parents=True, exist_ok=True)
        return d / filename

    @classmethod
    def load(
        cls,
        *,
        config_path: Optional[Path] = None,
        app_name: str = "syncprogress",
        filename: str = "sync_config.json",
        app_author: str | None = None,
        schema_version: int = SCHEMA_VERSION,
        reset_on_version_mismatch: bool = True,
        create_if_missing: bool = False,
    ) -> "SyncConfig":
        """
        Load config from disk.

        If file doesn't exist or is unreadable -> defaults.
        If schema mismatch:
          - reset_on_version_mismatch=True -> defaults
          - else -> keep loaded but overwrite schema_version

        If create_if_missing=True and file is missing -> immediately write defaults.
        """
        path = config_path or cls.default_config_path(app_name=app_name, filename=filename, app_author=app_author)
        default_data = SyncConfigData(schema_version=schema_version)

        try:
            raw = path.read_text(encoding="utf-8")
            parsed = json.loads(raw)
            if not isinstance(parsed, dict):
                logger.warning(f"Sync config file at {path} does not contain a dict, using defaults")
                return cls(path=path, data=default_data)

            loaded = SyncConfigData.from_json_dict(parsed)

            if int(loaded.schema_version) != int(schema_version):
                if reset_on_version_mismatch:
                    logger.warning(
                        f"Sync config schema version mismatch: loaded={loaded.schema_version}, "
                        f"expected={schema_version}, resetting to defaults"
                    )
                    return cls(path=path, data=default_data)
                loaded.schema_version = int(schema_version)

            return cls(path=path, data=loaded)

        except FileNotFoundError:
            logger.info(f"Sync config file not found at {path}, using defaults")
            cfg = cls(path=path, data=default_data)
            if create_if_missing:
                cfg.save()
            return cfg
        except Exception as e:
            logger.error(f"Failed to load sync config from {path}: {e}", exc_info=True)
            logger.info("Using default sync config")
            return cls(path=path, data=default_data)

    def save(self) -> None:
        """Write config to disk."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"saving sync config to {self.path}")
        self.path.write_text(json.dumps(self.data.to_json_dict(), indent=2), encoding="utf-8")

    def ensure_exists(self) -> None:
        """Create the config file on disk if it doesn't exist (writes current data)."""
        if not self.path.exists():
            self.save()

    # -----------------------------
    # Public API
    # -----------------------------
    @property
    def run_local_node(self) -> bool:
        return self.data.run_local_node

    @property
    def max_estimate_seconds(self) -> int:
        return self.data.max_estimate_seconds

    @property
    def log_level(self) -> str:
        return self.data.log_level

    def get_attribute(self, key: str) -> Any:
        """
        Get attribute value by key.

        Raises:
            AttributeError: If key doesn't exist
        """
        if key == "schema_version" or not hasattr(self.data, key):
            raise AttributeError(f"SyncConfigData has no attribute '{key}'")
        return getattr(self.data, key)

    def set_attribute(self, key: str, value: Any) -> None:
        """
        Set attribute value by key with validation.

        Raises:
            AttributeError: If key doesn't exist
            ValueError: If value is invalid for the attribute
        """
        if key == "schema_version" or not hasattr(self.data, key):
            raise AttributeError(f"SyncConfigData has no attribute '{key}'")

        if key == "run_local_node":
            if not isinstance(value, bool):
                raise ValueError(f"run_local_node must be a bool, got {value!r}")
        elif key == "max_estimate_seconds":
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"max_estimate_seconds must be an int, got {value!r}")
            lo, hi = MAX_ESTIMATE_SECONDS_RANGE
            if not lo <= value <= hi:
                raise ValueError(f"max_estimate_seconds {value} not in range [{lo}, {hi}]")
        elif key == "log_level":
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                raise ValueError(f"log_level {value!r} not in allowed options {LOG_LEVELS}")
            value = value.upper()

        setattr(self.data, key, value)
