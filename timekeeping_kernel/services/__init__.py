"""Services for the timekeeping kernel (write side)."""

from timekeeping_kernel.services.audit_sink import (
    AuditAction,
    AuditRecord,
    AuditSink,
    DatabaseAuditSink,
    InMemoryAuditSink,
    NullAuditSink,
    record_safely,
)
from timekeeping_kernel.services.kernel_facade import TimekeepingKernel
from timekeeping_kernel.services.report_aggregator import ReportAggregator, aggregate_entries
from timekeeping_kernel.services.report_signing_ledger import ReportSigningLedger
from timekeeping_kernel.services.shift_overlap_validator import (
    ShiftOverlapValidator,
    validate_no_overlap,
    validate_shift_times,
)
from timekeeping_kernel.services.shift_service import ShiftService
from timekeeping_kernel.services.time_entry_service import TimeEntryLifecycle

__all__ = [
    "AuditAction",
    "AuditRecord",
    "AuditSink",
    "DatabaseAuditSink",
    "InMemoryAuditSink",
    "NullAuditSink",
    "ReportAggregator",
    "ReportSigningLedger",
    "ShiftOverlapValidator",
    "ShiftService",
    "TimeEntryLifecycle",
    "TimekeepingKernel",
    "aggregate_entries",
    "record_safely",
    "validate_no_overlap",
    "validate_shift_times",
]
