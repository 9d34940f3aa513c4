"""
KernelSettings -- the configuration values the kernel consumes.

The kernel never reads configuration files.  ``timekeeping_config`` builds a
KernelSettings from YAML (see ``timekeeping_config.bridges``) and the caller
injects it into the services; the facade asks for it when none is given.
The defaults below are the values shipped in the packaged ``defaults.yaml``.
"""

from dataclasses import dataclass

from timekeeping_kernel.domain.values import AssignmentStatus


@dataclass(frozen=True)
class KernelSettings:
    default_timezone: str = "Europe/Warsaw"
    currency: str = "PLN"
    money_decimal_places: int = 2
    max_shift_hours: int = 24
    assignment_conflict_statuses: frozenset[AssignmentStatus] = frozenset(
        {AssignmentStatus.ASSIGNED, AssignmentStatus.COMPLETED}
    )
    retry_max_attempts: int = 3
    audit_enabled: bool = True

    def __post_init__(self):
        if self.max_shift_hours <= 0:
            raise ValueError("max_shift_hours must be positive")
        if self.money_decimal_places < 0:
            raise ValueError("money_decimal_places must not be negative")
        if self.retry_max_attempts < 1:
            raise ValueError("retry_max_attempts must be at least 1")
