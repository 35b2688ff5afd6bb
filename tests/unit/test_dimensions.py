"""
Unit Tests - Dimension Builders
"""
from datetime import date
from decimal import Decimal

import pytest

from supermarket_dw.ingestion.staging import StagedData
from supermarket_dw.transformation.dimensions import (
    build_calendar_days,
    build_categories,
    build_hours,
    build_loss_rates,
    build_price_records,
    build_products,
    calendar_attributes,
    filter_existing,
    hour_period,
)


class TestCategoryAndProduct:
    """Tests for catalog-derived dimensions"""

    def test_categories_are_distinct_and_ordered(self, staged):
        result = build_categories(staged.products)

        assert result.rows == [
            {"code": "1", "name": "Fruit"},
            {"code": "2", "name": "Greens"},
        ]
        assert result.excluded["missing_category"] == 1

    def test_conflicting_category_names_are_both_kept(self):
        """The uniqueness rule, not the builder, settles conflicting names"""
        staged = StagedData.from_records(products=[
            {"item_code": "1", "item_name": "a", "category_code": "7", "category_name": "Roots"},
            {"item_code": "2", "item_name": "b", "category_code": "7", "category_name": "Tubers"},
        ])

        result = build_categories(staged.products)

        assert [r["code"] for r in result.rows] == ["7", "7"]

    def test_products_resolve_category_ids(self, staged):
        result = build_products(staged.products, {"1": 10, "2": 20})

        by_code = {r["item_code"]: r for r in result.rows}
        assert set(by_code) == {101, 102, 103, 104}
        assert by_code[104]["category_id"] == 20
        assert by_code[101]["name"] == "apple"
        assert result.excluded["unknown_category"] == 1

    def test_leading_zero_category_scenario(self):
        staged = StagedData.from_records(
            products=[{"item_code": "101", "item_name": "apple", "category_code": "01", "category_name": "Produce"}],
            sales=[{"sale_date": "2024-03-01", "sale_time": "10:15:00", "item_code": "101",
                    "quantity_sold": "2", "unit_price": "3.00", "sale_or_return": "sale", "discount": "No"}],
        )

        categories = build_categories(staged.products)
        products = build_products(staged.products, {"01": 1})
        calendar = build_calendar_days(staged.sales, staged.prices)

        # The code is kept as text; "01" does not collapse to "1"
        assert categories.rows == [{"code": "01", "name": "Produce"}]
        assert products.rows == [{"item_code": 101, "name": "apple", "category_id": 1}]
        assert products.excluded_total == 0
        assert calendar.rows == [{
            "date": date(2024, 3, 1),
            "day": 1,
            "month": 3,
            "year": 2024,
            "quarter": 1,
            "weekday": 6,
            "day_name": "Friday",
            "month_name": "March",
            "is_weekend": False,
        }]

    def test_products_exclude_bad_codes_and_names(self):
        staged = StagedData.from_records(products=[
            {"item_code": "0", "item_name": "zero", "category_code": "1", "category_name": "F"},
            {"item_code": "abc", "item_name": "text", "category_code": "1", "category_name": "F"},
            {"item_code": "5", "item_name": "  ", "category_code": "1", "category_name": "F"},
            {"item_code": "6", "item_name": "fig", "category_code": "1", "category_name": "F"},
            {"item_code": "6", "item_name": "fig", "category_code": "1", "category_name": "F"},
        ])

        result = build_products(staged.products, {"1": 1})

        assert result.rows == [{"item_code": 6, "name": "fig", "category_id": 1}]
        assert result.excluded == {"invalid_item_code": 2, "missing_name": 1}


class TestCalendar:
    """Tests for calendar attributes"""

    def test_friday_is_not_weekend(self):
        attrs = calendar_attributes(date(2023, 6, 2))

        assert attrs["weekday"] == 6
        assert attrs["day_name"] == "Friday"
        assert attrs["is_weekend"] is False
        assert attrs["quarter"] == 2
        assert attrs["month_name"] == "June"

    @pytest.mark.parametrize("value, weekday", [
        (date(2023, 6, 4), 1),   # Sunday
        (date(2023, 6, 3), 7),   # Saturday
    ])
    def test_sunday_start_weekend(self, value, weekday):
        attrs = calendar_attributes(value)

        assert attrs["weekday"] == weekday
        assert attrs["is_weekend"] is True

    def test_monday_start_numbering(self):
        friday = calendar_attributes(date(2023, 6, 2), week_starts_on="monday")
        sunday = calendar_attributes(date(2023, 6, 4), week_starts_on="monday")

        assert friday["weekday"] == 5
        assert friday["is_weekend"] is False
        assert sunday["weekday"] == 7
        assert sunday["is_weekend"] is True

    def test_calendar_is_union_of_sale_and_price_dates(self, staged):
        result = build_calendar_days(staged.sales, staged.prices)

        assert [r["date"] for r in result.rows] == [date(2023, 6, 2), date(2023, 6, 3)]

    def test_unparseable_dates_are_counted_once(self):
        staged = StagedData.from_records(
            sales=[
                {"sale_date": "yesterday", "sale_time": "10:00", "item_code": "1",
                 "quantity_sold": "1", "unit_price": "1", "sale_or_return": "sale", "discount": "No"},
                {"sale_date": "yesterday", "sale_time": "11:00", "item_code": "1",
                 "quantity_sold": "1", "unit_price": "1", "sale_or_return": "sale", "discount": "No"},
            ],
            prices=[{"price_date": "2024-01-01", "item_code": "1", "wholesale_price": "1"}],
        )

        result = build_calendar_days(staged.sales, staged.prices)

        assert len(result.rows) == 1
        assert result.excluded["invalid_date"] == 1


class TestHours:
    """Tests for the hour lookup"""

    def test_twenty_four_hours(self):
        result = build_hours()

        assert [r["hour"] for r in result.rows] == list(range(24))

    @pytest.mark.parametrize("hour, period", [
        (0, "Dawn"), (5, "Dawn"),
        (6, "Morning"), (11, "Morning"),
        (12, "Afternoon"), (17, "Afternoon"),
        (18, "Night"), (23, "Night"),
    ])
    def test_period_boundaries(self, hour, period):
        assert hour_period(hour).value == period


class TestPriceAndLoss:
    """Tests for derived reference builders"""

    def test_prices_resolve_product_and_date(self, staged):
        product_ids = {101: 1, 103: 3, 104: 4}
        date_ids = {date(2023, 6, 2): 11, date(2023, 6, 3): 12}

        result = build_price_records(staged.prices, product_ids, date_ids)

        assert {"product_id": 1, "date_id": 11, "wholesale_price": Decimal("2.00")} in result.rows
        assert len(result.rows) == 3

    def test_prices_exclusion_reasons(self):
        staged = StagedData.from_records(prices=[
            {"price_date": "2023-06-02", "item_code": "1", "wholesale_price": "x"},
            {"price_date": "2023-06-02", "item_code": "9", "wholesale_price": "1"},
            {"price_date": "2030-01-01", "item_code": "1", "wholesale_price": "1"},
        ])

        result = build_price_records(staged.prices, {1: 1}, {date(2023, 6, 2): 1})

        assert result.rows == []
        assert result.excluded == {
            "invalid_wholesale_price": 1,
            "unknown_product": 1,
            "unknown_date": 1,
        }

    def test_loss_rates_round_and_resolve(self):
        staged = StagedData.from_records(loss_rates=[
            {"item_code": "1", "item_name": "a", "loss_rate": "9.435"},
            {"item_code": "2", "item_name": "b", "loss_rate": "-3"},
            {"item_code": "3", "item_name": "c", "loss_rate": "4"},
        ])

        result = build_loss_rates(staged.loss_rates, {1: 1, 2: 2})

        assert result.rows == [{"product_id": 1, "loss_rate": Decimal("9.44")}]
        assert result.excluded == {"invalid_loss_rate": 1, "unknown_product": 1}


def test_filter_existing_counts_skipped_rows():
    result = build_hours()

    filtered = filter_existing(result, range(20), key=lambda r: r["hour"])

    assert [r["hour"] for r in filtered.rows] == [20, 21, 22, 23]
    assert filtered.excluded["already_loaded"] == 20
