"""
Decimal money helpers.

Verifies:
- Rounding is HALF_UP to two places and only where called
- Hours and amounts are exact until rounded
- Floats never enter money arithmetic
"""

from decimal import Decimal

import pytest

from timekeeping_kernel.db.types import amount_for_minutes, minutes_to_hours, round_money


class TestRoundMoney:
    def test_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_custom_places(self):
        assert round_money(Decimal("1.23456"), 4) == Decimal("1.2346")

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            round_money(1.5)


class TestHoursAndAmounts:
    def test_minutes_to_hours_is_exact(self):
        assert minutes_to_hours(90) == Decimal("1.5")
        assert round_money(minutes_to_hours(20)) == Decimal("0.33")

    def test_amount_is_not_rounded_midway(self):
        # 20 min at 10.00/h is 3.333...; rounding per entry would lose a cent over 3 entries
        single = amount_for_minutes(20, Decimal("10"))
        assert round_money(single * 3) == Decimal("10.00")
        assert round_money(single) * 3 == Decimal("9.99")

    def test_amount_rejects_float_rate(self):
        with pytest.raises(TypeError):
            amount_for_minutes(60, 10.0)

    def test_reference_day(self):
        total = (
            amount_for_minutes(8 * 60, Decimal("55"))
            + amount_for_minutes(6 * 60, Decimal("35"))
            + amount_for_minutes(7 * 60, Decimal("40"))
        )
        assert round_money(total) == Decimal("930.00")
