"""
Bridges from configuration artifacts to kernel inputs.

Below the facade the kernel never imports ``timekeeping_config``; this
module is the one place the parsed document becomes a kernel value.
"""

from __future__ import annotations

from timekeeping_config.schema import KernelConfig
from timekeeping_kernel.domain.settings import KernelSettings
from timekeeping_kernel.domain.values import AssignmentStatus


def to_kernel_settings(config: KernelConfig) -> KernelSettings:
    return KernelSettings(
        default_timezone=config.default_timezone,
        currency=config.currency,
        money_decimal_places=config.money_decimal_places,
        max_shift_hours=config.max_shift_hours,
        assignment_conflict_statuses=frozenset(
            AssignmentStatus(s) for s in config.assignment_conflict_statuses
        ),
        retry_max_attempts=config.retry.max_attempts,
        audit_enabled=config.audit.enabled,
    )
