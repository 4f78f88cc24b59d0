"""
billing_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration layer.  Sits above ``billing_kernel`` and below
    ``billing_services``.  The kernel never imports from ``billing_config``;
    the services layer passes the relevant values down explicitly.

Resolution order:
    1. The YAML file named by ``BILLING_CONFIG``, or the bundled
       ``sets/default.yaml``.
    2. ``BILLING_DATABASE_URL`` and ``BILLING_LOG_LEVEL`` environment
       overrides.

Failure modes:
    - ``FileNotFoundError`` -- ``BILLING_CONFIG`` points at a missing file.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from billing_config.loader import compute_checksum, load_config, parse_config
from billing_config.schema import BillingConfig

_logger = logging.getLogger("billing_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "BILLING_CONFIG"
DATABASE_URL_ENV = "BILLING_DATABASE_URL"
LOG_LEVEL_ENV = "BILLING_LOG_LEVEL"

_active_config: BillingConfig | None = None


def _apply_env_overrides(config: BillingConfig) -> BillingConfig:
    overrides: dict[str, str] = {}
    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        overrides["database_url"] = database_url.strip()
    log_level = os.environ.get(LOG_LEVEL_ENV)
    if log_level:
        overrides["log_level"] = log_level.strip().upper()
    if not overrides:
        return config
    return replace(config, **overrides)


def get_active_config(config_path: Path | str | None = None) -> BillingConfig:
    """The ONLY public configuration entrypoint.

    The first call loads and caches the configuration; later calls return
    the cached object.  Passing ``config_path`` bypasses both the cache and
    the ``BILLING_CONFIG`` variable (environment overrides still apply).

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If configuration validation fails.
    """
    global _active_config

    if config_path is None and _active_config is not None:
        return _active_config

    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    config = _apply_env_overrides(load_config(path))

    _logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "config_path": str(path),
            "checksum": config.checksum,
            "log_level": config.log_level,
            "default_currency": config.default_currency,
        },
    )

    if config_path is None:
        _active_config = config
    return config


def reset_active_config() -> None:
    """Drop the cached configuration (tests)."""
    global _active_config
    _active_config = None


__all__ = [
    "BillingConfig",
    "compute_checksum",
    "get_active_config",
    "load_config",
    "parse_config",
    "reset_active_config",
]
