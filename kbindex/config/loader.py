"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/config.yaml`` -- static defaults checked into the repo
  2. ``.env`` file          -- local developer overrides (not committed)
  3. Environment vars       -- set at deploy time

YAML sections are flattened into setting names, so::

    index:
      chunk_size: 800

sets ``index_chunk_size`` -- which is not a field -- while::

    chunk:
      size: 800

sets ``chunk_size``.  Top-level scalar keys map to fields directly.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from kbindex.config.settings import Settings
from kbindex.utils.errors import ConfigurationError


def load_config(path: str | Path = "config/config.yaml") -> Settings:
    """Load the YAML file at *path* (if present) and merge environment Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Raises
    ------
    ConfigurationError
        If the YAML cannot be parsed or the merged values fail validation.
    """
    config_path = Path(path)
    yaml_config: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                # safe_load only; never yaml.load on config files.
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                f"Could not read configuration file {config_path}",
                technical_message=str(exc),
            ) from exc
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping",
                technical_message=f"got {type(loaded).__name__}",
            )
        yaml_config = _flatten(loaded)

    try:
        env_settings = Settings()
        merged = {**yaml_config, **env_settings.model_dump(exclude_unset=True)}
        return Settings(**merged)
    except ValidationError as exc:
        raise ConfigurationError("Invalid configuration", technical_message=str(exc)) from exc


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings, joining keys with underscores."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name] = value
    return flat
