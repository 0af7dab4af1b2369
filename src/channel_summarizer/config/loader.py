"""YAML defaults loader.

`config.yaml` holds non-secret defaults. Nested keys are flattened into
upper-case names joined by underscores, e.g.::

    summary:
      model: gpt-4o      ->  SUMMARY_MODEL = "gpt-4o"

Environment variables and `.env` still take precedence (see settings.py).
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("config.yaml")


def _flatten(data: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        name = f"{prefix}_{key}" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten(value, name))
        else:
            flat[name.upper()] = value
    return flat


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file into a dict; a missing or empty file yields {}."""
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ValueError(
            f"Configuration must be a mapping, got {type(data).__name__} in {path}"
        )

    return data


@lru_cache(maxsize=1)
def get_yaml_defaults() -> dict[str, Any]:
    """Return flattened defaults from the YAML config (path overridable via CONFIG_PATH)."""
    path = Path(os.environ.get("CONFIG_PATH", DEFAULT_CONFIG_PATH))
    return _flatten(load_yaml_file(path))
