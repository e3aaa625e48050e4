"""ConfigManager — environment profiles and typed dashboard settings."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

from shopdash.config import (
    DEFAULT_ANOMALY_THRESHOLD,
    DEFAULT_FORECAST_PERIODS,
    DEFAULT_MIN_STOCK_THRESHOLD,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_TOP_N,
    STATE_DIR,
)

logger = logging.getLogger(__name__)

# All known configuration keys with defaults
_CONFIG_KEYS: dict[str, dict[str, Any]] = {
    "SHOPDASH_ENV": {"default": "development", "description": "Environment profile"},
    "SHOPDASH_LOG_LEVEL": {"default": "INFO", "description": "Logging level"},
    "SHOPDASH_REFRESH_INTERVAL": {"default": DEFAULT_REFRESH_INTERVAL, "description": "Auto-refresh period (seconds)"},
    "SHOPDASH_AUTO_REFRESH": {"default": "true", "description": "Arm auto-refresh on mount"},
    "SHOPDASH_TOP_N": {"default": DEFAULT_TOP_N, "description": "Top products widget length"},
    "SHOPDASH_MIN_STOCK": {"default": DEFAULT_MIN_STOCK_THRESHOLD, "description": "Healthy inventory threshold"},
    "SHOPDASH_FORECAST_PERIODS": {"default": DEFAULT_FORECAST_PERIODS, "description": "Forecast horizon (months)"},
    "SHOPDASH_ANOMALY_THRESHOLD": {"default": DEFAULT_ANOMALY_THRESHOLD, "description": "Anomaly z-score threshold"},
    "SHOPDASH_VIEW_STORE": {"default": "json", "description": "View storage: memory, json or sqlite"},
    "SHOPDASH_VIEW_PATH": {"default": f"{STATE_DIR}/views.json", "description": "View storage path"},
    "SHOPDASH_LEDGER_DB": {"default": "", "description": "Order ledger database (empty: synthetic revenue)"},
}

_PROFILES: dict[str, dict[str, str]] = {
    "development": {
        "SHOPDASH_ENV": "development",
        "SHOPDASH_LOG_LEVEL": "DEBUG",
    },
    "production": {
        "SHOPDASH_ENV": "production",
        "SHOPDASH_LOG_LEVEL": "WARNING",
    },
    "testing": {
        "SHOPDASH_ENV": "testing",
        "SHOPDASH_LOG_LEVEL": "DEBUG",
        "SHOPDASH_AUTO_REFRESH": "false",
        "SHOPDASH_VIEW_STORE": "memory",
    },
}

_TRUE = {"1", "true", "yes", "on"}

Layer = tuple[str, dict[str, str]]


def _known(values: dict[str, Any], origin: str) -> dict[str, str]:
    """Keep recognised keys, stringified; anything else is logged and dropped."""
    layer: dict[str, str] = {}
    for key, value in values.items():
        if key in _CONFIG_KEYS:
            layer[key] = str(value)
        else:
            logger.debug("Ignoring unknown key %s from %s", key, origin)
    return layer


def _defaults_layer() -> Layer:
    return "defaults", {key: str(info["default"]) for key, info in _CONFIG_KEYS.items()}


def _profile_layer() -> Layer:
    env_name = os.environ.get("SHOPDASH_ENV", _CONFIG_KEYS["SHOPDASH_ENV"]["default"])
    if env_name not in _PROFILES:
        logger.warning("Unknown profile %r, using defaults only", env_name)
    return f"profile:{env_name}", dict(_PROFILES.get(env_name, {}))


def _json_layer(path: Path) -> Layer:
    if not path.is_file():
        return str(path), {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        logger.debug("Could not read %s", path, exc_info=True)
        return str(path), {}
    if not isinstance(data, dict):
        logger.debug("%s does not hold an object, ignoring it", path)
        return str(path), {}
    return str(path), _known(data, str(path))


def _dotenv_layer(path: Path) -> Layer:
    if not path.is_file():
        return str(path), {}
    pairs: dict[str, str] = {}
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        logger.debug("Could not read %s", path, exc_info=True)
        return str(path), {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        pairs[key.strip()] = value.strip()
    return str(path), _known(pairs, str(path))


def _environ_layer() -> Layer:
    return "environment", {key: os.environ[key] for key in _CONFIG_KEYS if key in os.environ}


def config_layers(project_path: str | Path) -> list[Layer]:
    """Configuration layers for *project_path*, lowest precedence first.

    defaults, the active profile, ``.shopdash/config.json``, ``.env`` and
    finally ``SHOPDASH_*`` environment variables.  The profile is chosen by
    the ``SHOPDASH_ENV`` environment variable only.
    """
    root = Path(project_path)
    return [
        _defaults_layer(),
        _profile_layer(),
        _json_layer(root / STATE_DIR / "config.json"),
        _dotenv_layer(root / ".env"),
        _environ_layer(),
    ]


class DashboardSettings(BaseModel):
    """Typed view of the merged configuration."""

    env: str = "development"
    log_level: str = "INFO"
    refresh_interval: float = Field(default=DEFAULT_REFRESH_INTERVAL, gt=0)
    auto_refresh: bool = True
    top_n: int = Field(default=DEFAULT_TOP_N, ge=0)
    min_stock_threshold: int = DEFAULT_MIN_STOCK_THRESHOLD
    forecast_periods: int = Field(default=DEFAULT_FORECAST_PERIODS, ge=0)
    anomaly_threshold: float = Field(default=DEFAULT_ANOMALY_THRESHOLD, gt=0)
    view_store: Literal["memory", "json", "sqlite"] = "json"
    view_path: str = f"{STATE_DIR}/views.json"
    ledger_db: str = ""


class ConfigManager:
    """Manage dashboard configuration across environments."""

    def generate_env_template(self, project_path: str | Path) -> Path:
        """Create .env.example with all config keys.

        Returns the path to the generated file.
        """
        root = Path(project_path)
        env_path = root / ".env.example"

        lines = ["# shopdash configuration template", "# Copy to .env and fill in values", ""]
        for key, info in _CONFIG_KEYS.items():
            lines.append(f"# {info['description']}")
            lines.append(f"{key}={info['default']}")
            lines.append("")

        env_path.write_text("\n".join(lines), encoding="utf-8")
        return env_path

    def load_config(self, project_path: str | Path) -> dict[str, str]:
        """Merge every layer from :func:`config_layers` into one flat dict."""
        config: dict[str, str] = {}
        for _, values in config_layers(project_path):
            config.update(values)
        return config

    def config_sources(self, project_path: str | Path) -> dict[str, str]:
        """Name of the layer that supplied each key's effective value."""
        sources: dict[str, str] = {}
        for origin, values in config_layers(project_path):
            sources.update(dict.fromkeys(values, origin))
        return sources

    def load_settings(self, project_path: str | Path) -> DashboardSettings:
        """Load the merged config and validate it into :class:`DashboardSettings`."""
        config = self.load_config(project_path)
        return DashboardSettings(
            env=config["SHOPDASH_ENV"],
            log_level=config["SHOPDASH_LOG_LEVEL"].upper(),
            refresh_interval=float(config["SHOPDASH_REFRESH_INTERVAL"]),
            auto_refresh=config["SHOPDASH_AUTO_REFRESH"].strip().lower() in _TRUE,
            top_n=int(config["SHOPDASH_TOP_N"]),
            min_stock_threshold=int(config["SHOPDASH_MIN_STOCK"]),
            forecast_periods=int(config["SHOPDASH_FORECAST_PERIODS"]),
            anomaly_threshold=float(config["SHOPDASH_ANOMALY_THRESHOLD"]),
            view_store=config["SHOPDASH_VIEW_STORE"].strip().lower(),
            view_path=config["SHOPDASH_VIEW_PATH"],
            ledger_db=config["SHOPDASH_LEDGER_DB"],
        )
