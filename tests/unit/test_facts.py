"""
Unit Tests - Fact Builder
"""
from datetime import date
from decimal import Decimal

from supermarket_dw.ingestion.staging import StagedData
from supermarket_dw.transformation.facts import build_sale_transactions

PRODUCT_IDS = {101: 1, 102: 2, 103: 3}
DATE_IDS = {date(2023, 6, 2): 7}
HOURS = set(range(24))


def sale(**overrides) -> dict:
    row = {
        "sale_date": "2023-06-02",
        "sale_time": "10:15:00",
        "item_code": "101",
        "quantity_sold": "2",
        "unit_price": "3.00",
        "sale_or_return": "sale",
        "discount": "No",
    }
    row.update(overrides)
    return row


def build(*rows):
    staged = StagedData.from_records(sales=list(rows))
    return build_sale_transactions(staged.sales, PRODUCT_IDS, DATE_IDS, HOURS)


class TestSaleTransactions:
    """Tests for build_sale_transactions"""

    def test_resolves_keys_and_total(self):
        result = build(sale())

        assert result.rows == [{
            "date_id": 7,
            "hour_id": 10,
            "product_id": 1,
            "quantity": Decimal("2.000"),
            "unit_price": Decimal("3.00"),
            "total_amount": Decimal("6.00"),
            "has_discount": False,
            "is_return": False,
        }]

    def test_total_is_rounded_half_up(self):
        result = build(sale(quantity_sold="0.335", unit_price="1.50"))

        # 0.335 * 1.50 = 0.5025
        assert result.rows[0]["total_amount"] == Decimal("0.50")

        result = build(sale(quantity_sold="0.7", unit_price="2.25"))

        # 0.7 * 2.25 = 1.575
        assert result.rows[0]["total_amount"] == Decimal("1.58")

    def test_quantity_keeps_three_places(self):
        result = build(sale(quantity_sold="1.23456"))

        assert result.rows[0]["quantity"] == Decimal("1.235")

    def test_flags_follow_tokens(self):
        result = build(
            sale(sale_or_return="return", discount="Yes"),
            sale(sale_or_return="Return", discount="yes"),
        )

        assert result.rows[0]["is_return"] is True
        assert result.rows[0]["has_discount"] is True
        assert result.rows[1]["is_return"] is False
        assert result.rows[1]["has_discount"] is False

    def test_custom_tokens(self):
        staged = StagedData.from_records(sales=[sale(sale_or_return="R", discount="Y")])

        result = build_sale_transactions(
            staged.sales, PRODUCT_IDS, DATE_IDS, HOURS,
            return_token="R", discount_token="Y",
        )

        assert result.rows[0]["is_return"] is True
        assert result.rows[0]["has_discount"] is True

    def test_exclusion_reasons_are_counted(self):
        result = build(
            sale(quantity_sold=""),
            sale(quantity_sold="-1"),
            sale(unit_price="3,00"),
            sale(item_code="555"),
            sale(sale_date="2023-06-03"),
            sale(sale_time="25:00:00"),
            sale(),
        )

        assert len(result.rows) == 1
        assert result.excluded == {
            "invalid_quantity": 2,
            "invalid_unit_price": 1,
            "unknown_product": 1,
            "unknown_date": 1,
            "invalid_time": 1,
        }
        assert result.excluded_total == 6

    def test_hour_missing_from_lookup_is_excluded(self):
        staged = StagedData.from_records(sales=[sale()])

        result = build_sale_transactions(staged.sales, PRODUCT_IDS, DATE_IDS, hours={9})

        assert result.rows == []
        assert result.excluded["invalid_time"] == 1

    def test_zero_quantity_is_kept_for_the_store_to_reject(self):
        result = build(sale(quantity_sold="0"))

        assert result.rows[0]["quantity"] == Decimal("0.000")
        assert result.rows[0]["total_amount"] == Decimal("0.00")

    def test_padded_fields_are_cleaned_first(self):
        result = build(sale(item_code="  102 ", sale_or_return=" return  "))

        assert result.rows[0]["product_id"] == 2
        assert result.rows[0]["is_return"] is True
