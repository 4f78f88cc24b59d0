"""
Configuration loader (``billing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``BillingConfig``.  Runtime code obtains configuration through
``billing_config.get_active_config()``; this module is the parsing step
behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or wrongly typed value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingConfig

_FIELD_TYPES: dict[str, type] = {
    "database_url": str,
    "echo": bool,
    "pool_size": int,
    "max_overflow": int,
    "pool_timeout": int,
    "sqlite_busy_timeout": float,
    "default_currency": str,
    "log_level": str,
    "max_retries": int,
    "notes_max_length": int,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a configuration mapping."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _coerce(key: str, value: Any) -> Any:
    expected = _FIELD_TYPES[key]
    if expected is bool:
        if isinstance(value, bool):
            return value
        raise ValueError(f"{key} must be a boolean, got {value!r}")
    if expected is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise ValueError(f"{key} must be a number, got {value!r}")
    if expected is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value.strip()


def parse_config(data: dict[str, Any]) -> BillingConfig:
    """
    Parse a ``BillingConfig`` from a dict.

    The ``billing`` top-level key is unwrapped when present.  Missing keys
    take the dataclass defaults.

    Raises:
        ValueError: on unknown keys or invalid values.
    """
    section = data.get("billing", data)
    if not isinstance(section, dict):
        raise ValueError("billing section must be a mapping")

    known = {f.name for f in fields(BillingConfig)} - {"checksum"}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

    values = {key: _coerce(key, value) for key, value in section.items()}
    if "log_level" in values:
        values["log_level"] = values["log_level"].upper()
    if "default_currency" in values:
        values["default_currency"] = values["default_currency"].upper()
    return BillingConfig(checksum=compute_checksum(section), **values)


def load_config(path: Path | str) -> BillingConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(Path(path)))
