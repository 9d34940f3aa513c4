"""Read-only query selectors for the timekeeping kernel."""

from timekeeping_kernel.selectors.base import BaseSelector
from timekeeping_kernel.selectors.report_selector import ReportSelector
from timekeeping_kernel.selectors.shift_selector import ShiftSelector
from timekeeping_kernel.selectors.time_entry_selector import TimeEntrySelector

__all__ = [
    "BaseSelector",
    "ReportSelector",
    "ShiftSelector",
    "TimeEntrySelector",
]
