"""
Configuration Loader (``timekeeping_config.loader``).

Responsibility
--------------
Loads a YAML configuration document and parses it into the typed
``timekeeping_config.schema`` dataclasses.  The single public entry point
for runtime config is ``timekeeping_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Time zones are validated against the IANA database at load time.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from timekeeping_config.schema import AuditConfig, KernelConfig, RetryConfig

_VALID_ASSIGNMENT_STATUSES = frozenset({"assigned", "completed", "declined"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _parse_timezone(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"default_timezone must be a non-empty string, got {value!r}")
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone in configuration: {value!r}") from exc
    return value


def _parse_positive_int(data: dict[str, Any], key: str, allow_zero: bool = False) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{key} must be positive, got {value}")
    return value


def _parse_statuses(values: Any) -> tuple[str, ...]:
    if not isinstance(values, list) or not values:
        raise ValueError("assignment_conflict_statuses must be a non-empty list")
    unknown = set(values) - _VALID_ASSIGNMENT_STATUSES
    if unknown:
        raise ValueError(f"Unknown assignment statuses: {sorted(unknown)}")
    return tuple(values)


def parse_config(data: dict[str, Any], source_path: str | None = None) -> KernelConfig:
    """Parse a configuration mapping into a KernelConfig."""
    currency = data["currency"]
    if not isinstance(currency, str) or len(currency) != 3 or not currency.isupper():
        raise ValueError(f"currency must be a 3-letter ISO 4217 code, got {currency!r}")

    retry_data = data.get("retry") or {}
    audit_data = data.get("audit") or {}

    retry = RetryConfig(
        max_attempts=_parse_positive_int(retry_data, "max_attempts")
        if "max_attempts" in retry_data
        else RetryConfig().max_attempts
    )
    audit = AuditConfig(enabled=bool(audit_data.get("enabled", True)))

    return KernelConfig(
        default_timezone=_parse_timezone(data["default_timezone"]),
        currency=currency,
        money_decimal_places=_parse_positive_int(data, "money_decimal_places", allow_zero=True),
        max_shift_hours=_parse_positive_int(data, "max_shift_hours"),
        assignment_conflict_statuses=_parse_statuses(data["assignment_conflict_statuses"]),
        retry=retry,
        audit=audit,
        source_path=source_path,
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> KernelConfig:
    return parse_config(load_yaml_file(path), source_path=str(path))
