"""
Value enumerations shared by the domain, ORM models and services.

Every enum subclasses ``str`` so values round-trip through ``String``
columns and compare equal to the raw strings read back from the database.
"""

from enum import Enum


class MembershipRole(str, Enum):
    """Role a person holds within one restaurant."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    OWNER = "owner"
    SUPER_ADMIN = "super_admin"


# Roles entitled to the manager-tier hourly rate.
MANAGER_RATE_ROLES = frozenset({MembershipRole.MANAGER, MembershipRole.OWNER})


class MembershipStatus(str, Enum):
    """Membership lifecycle.  Memberships are deactivated, never removed."""

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"


class AssignmentStatus(str, Enum):
    """Status of a worker's binding to a shift."""

    ASSIGNED = "assigned"
    COMPLETED = "completed"
    DECLINED = "declined"


class TimeEntryStatus(str, Enum):
    """
    Lifecycle status of a time entry.

    Contract: ACTIVE -> PENDING -> APPROVED | REJECTED.  Force-closed
    entries enter at PENDING directly.
    """

    ACTIVE = "active"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimeEntrySource(str, Enum):
    """How a time entry came to exist or was closed."""

    MANUAL = "manual"
    CLOCK = "clock"
    SYSTEM_CLOSED = "system-closed"


class SignatureAction(str, Enum):
    SIGNED = "signed"
    UNSIGNED = "unsigned"


class ReportKind(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
