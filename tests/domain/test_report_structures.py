"""
Tagged report structures.

Verifies:
- Report totals keep Decimal precision through their JSON form
- Signature log entries are distinct variants selected by action
- Kernel settings reject nonsensical values
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from timekeeping_kernel.domain.dtos import (
    EmployeeTotals,
    ReportTotals,
    SignedLogEntry,
    TimeEntryPatch,
    TotalsSummary,
    UnsignedLogEntry,
    signature_entry_from_dict,
)
from timekeeping_kernel.domain.settings import KernelSettings
from timekeeping_kernel.domain.values import ReportKind, SignatureAction


def _totals(**overrides) -> ReportTotals:
    membership_id = uuid4()
    row = EmployeeTotals(
        user_id=uuid4(),
        user_name="Ala",
        membership_id=membership_id,
        role="employee",
        total_minutes=450,
        total_hours=Decimal("7.50"),
        hourly_rate=Decimal("31.25"),
        total_amount=Decimal("234.38"),
        entries=1,
        days_worked=1,
    )
    fields = dict(
        kind=ReportKind.WEEKLY,
        restaurant_id=uuid4(),
        period_start=date(2025, 1, 6),
        period_end=date(2025, 1, 12),
        currency="PLN",
        employees=(row,),
        summary=TotalsSummary(1, Decimal("7.50"), Decimal("234.38")),
        daily_reports_count=3,
    )
    fields.update(overrides)
    return ReportTotals(**fields)


class TestReportTotals:
    def test_json_form_keeps_money_as_strings(self):
        data = _totals().to_dict()
        assert data["summary"]["total_amount"] == "234.38"
        assert data["employees"][0]["hourly_rate"] == "31.25"
        assert data["daily_reports_count"] == 3

    def test_read_back_is_equal(self):
        totals = _totals()
        assert ReportTotals.from_dict(totals.to_dict()) == totals

    def test_daily_totals_omit_daily_reports_count(self):
        data = _totals(kind=ReportKind.DAILY, daily_reports_count=None).to_dict()
        assert "daily_reports_count" not in data

    def test_employee_lookup(self):
        totals = _totals()
        row = totals.employees[0]
        assert totals.employee(row.membership_id) is row
        assert totals.employee(uuid4()) is None


class TestSignatureLogEntries:
    def test_variant_selected_by_action(self):
        at = datetime(2025, 1, 7, 9, 0, tzinfo=timezone.utc)
        signer = uuid4()
        unsigned = UnsignedLogEntry(
            seq=2,
            actor_user_id=uuid4(),
            at=at,
            reason="late correction",
            previous_signed_by_user_id=signer,
            previous_signed_at=at,
        )
        parsed = signature_entry_from_dict(unsigned.to_dict())
        assert isinstance(parsed, UnsignedLogEntry)
        assert parsed.action == SignatureAction.UNSIGNED
        assert parsed.previous_signed_by_user_id == signer

    def test_signed_entry_has_no_reason(self):
        entry = SignedLogEntry(seq=1, actor_user_id=uuid4(), at=datetime.now(timezone.utc))
        assert "reason" not in entry.to_dict()
        assert entry.action == SignatureAction.SIGNED


class TestTimeEntryPatch:
    def test_empty_patch(self):
        assert TimeEntryPatch().is_empty()

    def test_clearing_reason_is_not_empty(self):
        patch = TimeEntryPatch(reason=None)
        assert patch.touches_reason
        assert not patch.is_empty()


class TestKernelSettings:
    def test_defaults(self):
        settings = KernelSettings()
        assert settings.currency == "PLN"
        assert settings.max_shift_hours == 24

    @pytest.mark.parametrize(
        "field,value",
        [("max_shift_hours", 0), ("money_decimal_places", -1), ("retry_max_attempts", 0)],
    )
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValueError):
            KernelSettings(**{field: value})
