"""
Timekeeping Kernel - Time & Scheduling Integrity Engine

Turns raw clock-in/clock-out events into signed, immutable payroll reports:
- Half-open interval overlap checks for shift scheduling
- Time-entry lifecycle (clock-in, clock-out, correction, approval)
- Effective hourly rate resolution
- Daily/weekly/monthly aggregation with decimal money
- Append-only report signature ledger gating edits
"""

__version__ = "0.1.0"
