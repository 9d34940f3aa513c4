"""Domain models for the timekeeping kernel."""

from timekeeping_kernel.models.audit_log import AuditLogEntry
from timekeeping_kernel.models.report import (
    ReportDaily,
    ReportMonthly,
    ReportSignature,
    ReportWeekly,
    signed_daily_report_query,
)
from timekeeping_kernel.models.restaurant import AppUser, Membership, Restaurant
from timekeeping_kernel.models.schedule import ScheduleCategory, Shift, ShiftAssignment
from timekeeping_kernel.models.time_entry import TimeEntry

__all__ = [
    "Restaurant",
    "AppUser",
    "Membership",
    "ScheduleCategory",
    "Shift",
    "ShiftAssignment",
    "TimeEntry",
    "ReportDaily",
    "ReportSignature",
    "ReportWeekly",
    "ReportMonthly",
    "AuditLogEntry",
    "signed_daily_report_query",
]
