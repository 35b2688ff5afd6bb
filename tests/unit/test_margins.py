"""
Unit Tests - Margin Arithmetic
"""
from decimal import Decimal

import pytest

from supermarket_dw.analytics.margins import (
    average_price,
    gross_margin,
    loss_adjusted_margin,
)


class TestGrossMargin:
    """Tests for gross_margin"""

    def test_difference_of_prices(self):
        assert gross_margin(Decimal("3.00"), Decimal("2.00")) == Decimal("1.00")

    def test_can_be_negative(self):
        assert gross_margin(Decimal("1.50"), Decimal("2.25")) == Decimal("-0.75")

    @pytest.mark.parametrize("avg, wholesale", [
        (None, Decimal("2.00")),
        (Decimal("3.00"), None),
        (None, None),
    ])
    def test_missing_operand_gives_zero(self, avg, wholesale):
        assert gross_margin(avg, wholesale) == Decimal("0.00")


class TestLossAdjustedMargin:
    """Tests for loss_adjusted_margin"""

    def test_divides_by_surviving_share(self):
        assert loss_adjusted_margin(Decimal("1.00"), Decimal("20")) == Decimal("1.25")

    def test_zero_rate_is_unchanged(self):
        assert loss_adjusted_margin(Decimal("1.37"), Decimal("0")) == Decimal("1.37")

    def test_no_rate_falls_back_to_gross(self):
        assert loss_adjusted_margin(Decimal("1.00"), None) == Decimal("1.00")

    @pytest.mark.parametrize("rate", [Decimal("100"), Decimal("100.00"), Decimal("150")])
    def test_full_loss_falls_back_to_gross(self, rate):
        assert loss_adjusted_margin(Decimal("2.40"), rate) == Decimal("2.40")

    def test_result_is_rounded_to_cents(self):
        # 1 / (1 - 0.03) = 1.0309...
        assert loss_adjusted_margin(Decimal("1.00"), Decimal("3")) == Decimal("1.03")

    def test_zero_gross_stays_zero(self):
        assert loss_adjusted_margin(Decimal("0.00"), Decimal("10")) == Decimal("0.00")


class TestAveragePrice:
    """Tests for average_price"""

    def test_mean_is_rounded_half_up(self):
        assert average_price([Decimal("1.00"), Decimal("1.01")]) == Decimal("1.01")

    def test_empty_is_none(self):
        assert average_price([]) is None

    def test_accepts_floats(self):
        assert average_price([2.5, 3.5]) == Decimal("3.00")
