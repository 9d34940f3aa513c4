"""
KernelConfig schema.

The parsed form of a timekeeping configuration document.  The loader turns
YAML into these frozen dataclasses; ``bridges.to_kernel_settings`` turns
them into the ``KernelSettings`` value the kernel consumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3


@dataclass(frozen=True)
class AuditConfig:
    enabled: bool = True


@dataclass(frozen=True)
class KernelConfig:
    """Top-level configuration document."""

    default_timezone: str
    currency: str
    money_decimal_places: int
    max_shift_hours: int
    assignment_conflict_statuses: tuple[str, ...]
    retry: RetryConfig = field(default_factory=RetryConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    source_path: str | None = None
    checksum: str | None = None
