"""Configuration for the planning engine.

Loads from a YAML file with environment variable overrides.
Pattern: PLANNING__{KEY} overrides top-level YAML keys.
Example: PLANNING__HORIZON_DAYS=180

Environment variables:
  PLANNING_CONFIG_PATH: YAML file (default: config/planning.yml)
  DATABASE_URL:         SQLAlchemy URL, wins over the YAML value
"""
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "config/planning.yml"
DEFAULT_DB_URL = "sqlite:////tmp/planning.db"


class PlanningConfig(BaseModel):
    database_url: str = DEFAULT_DB_URL
    echo_sql: bool = False
    # Recurring contracts without end date are planned this far ahead
    horizon_days: int = Field(default=365, ge=1)
    due_soon_days: int = Field(default=7, ge=0)
    inspection_window_days: int = Field(default=30, ge=0)
    date_format: str = "%d/%m/%Y"


def _apply_env_overrides(config_dict: dict, prefix: str = "PLANNING") -> dict:
    """Apply PLANNING__KEY=value environment overrides to the config dict."""
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}__"):
            continue
        name = key[len(prefix) + 2:].lower()
        # Type coercion for common cases
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        config_dict[name] = value
    return config_dict


def load_config(config_path: Optional[str] = None) -> PlanningConfig:
    """Load configuration from YAML file with env overrides.

    Priority: env vars > YAML file > defaults
    """
    config_dict = {}

    # 1. Load YAML if exists
    if config_path is None:
        config_path = os.getenv("PLANNING_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            config_dict = yaml.safe_load(f) or {}

    # 2. Apply env overrides
    config_dict = _apply_env_overrides(config_dict)

    # 3. Database URL from dedicated env var (common pattern)
    if os.getenv("DATABASE_URL"):
        config_dict["database_url"] = os.environ["DATABASE_URL"]

    return PlanningConfig(**config_dict)


_config: Optional[PlanningConfig] = None


def get_config() -> PlanningConfig:
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> PlanningConfig:
    global _config
    _config = load_config(config_path)
    return _config
