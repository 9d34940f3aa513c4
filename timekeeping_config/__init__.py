"""
timekeeping_config -- single public entrypoint for timekeeping configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    directly.  ``get_kernel_settings()`` hands the kernel its settings value.

Architecture position:
    Configuration.  This package sits above ``timekeeping_kernel``.  Kernel
    domain, models, selectors and services MUST NEVER import from
    ``timekeeping_config``; only the ``TimekeepingKernel`` facade loads it,
    lazily, when no settings are passed.  ``bridges`` translates the parsed
    document into ``KernelSettings``.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``ValueError`` / ``KeyError`` -- the document failed validation.

Audit relevance:
    Every load emits a ``TIMEKEEPING_CONFIG_TRACE`` log entry with the
    source path and checksum, tying reports back to the configuration
    that governed them.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from timekeeping_config.bridges import to_kernel_settings
from timekeeping_config.loader import load_config
from timekeeping_config.schema import AuditConfig, KernelConfig, RetryConfig
from timekeeping_kernel.domain.settings import KernelSettings

_logger = logging.getLogger("timekeeping_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


@lru_cache(maxsize=8)
def _load_cached(path: str) -> KernelConfig:
    config = load_config(Path(path))
    _logger.info(
        "TIMEKEEPING_CONFIG_TRACE",
        extra={
            "trace_type": "TIMEKEEPING_CONFIG_TRACE",
            "source_path": config.source_path,
            "checksum": config.checksum,
            "default_timezone": config.default_timezone,
            "currency": config.currency,
        },
    )
    return config


def get_active_config(config_path: Path | str | None = None) -> KernelConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML document.  Defaults to the
            packaged ``defaults.yaml``.

    Returns:
        KernelConfig, cached per resolved path.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    return _load_cached(str(path.resolve()))


def get_kernel_settings(config_path: Path | str | None = None) -> KernelSettings:
    return to_kernel_settings(get_active_config(config_path))


def clear_config_cache() -> None:
    """Forget cached documents.  FOR TESTING ONLY."""
    _load_cached.cache_clear()


__all__ = [
    "AuditConfig",
    "DEFAULT_CONFIG_PATH",
    "KernelConfig",
    "RetryConfig",
    "clear_config_cache",
    "get_active_config",
    "get_kernel_settings",
]
