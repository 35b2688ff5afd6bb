"""
Unit Tests - Cleaning and Parsing
"""
from datetime import date
from decimal import Decimal

import polars as pl

from supermarket_dw.transformation.cleaners import (
    QUANTITY_PLACES,
    DataCleaner,
    clean_dataframe,
    matches_token,
    parse_date,
    parse_decimal,
    parse_hour,
    parse_item_code,
)


class TestParseDecimal:
    """Tests for strict decimal parsing"""

    def test_plain_values(self):
        assert parse_decimal("3") == Decimal("3.00")
        assert parse_decimal("3.5") == Decimal("3.50")
        assert parse_decimal("3.") == Decimal("3.00")
        assert parse_decimal(" 7.25 ") == Decimal("7.25")

    def test_rounds_half_up(self):
        assert parse_decimal("2.005") == Decimal("2.01")
        assert parse_decimal("2.004") == Decimal("2.00")
        assert parse_decimal("0.0005", QUANTITY_PLACES) == Decimal("0.001")

    def test_rejects_malformed_text(self):
        for text in ["", "abc", "-1.5", "+2", "12,5", "1e3", "$4.20", ".5", None]:
            assert parse_decimal(text) is None, text

    def test_zero_passes_format(self):
        """Positivity is a store rule, not a format rule"""
        assert parse_decimal("0") == Decimal("0.00")


class TestParseKeys:
    """Tests for item code, date and hour parsing"""

    def test_item_code(self):
        assert parse_item_code("101") == 101
        assert parse_item_code("101.0") == 101
        assert parse_item_code(" 102900005115000 ") == 102900005115000

    def test_item_code_rejects_non_positive_and_text(self):
        for text in ["0", "-5", "10a", "1.5", "", None]:
            assert parse_item_code(text) is None, text

    def test_date_layouts(self):
        assert parse_date("2023-06-02") == date(2023, 6, 2)
        assert parse_date("2023/06/02") == date(2023, 6, 2)
        assert parse_date("2023-06-02 00:00:00") == date(2023, 6, 2)
        assert parse_date("02-06-2023") is None
        assert parse_date("2023-02-30") is None

    def test_hour(self):
        assert parse_hour("10:15:00") == 10
        assert parse_hour("9:01") == 9
        assert parse_hour("23:59:59.123") == 23
        assert parse_hour("00:00:00") == 0

    def test_hour_rejects_invalid(self):
        for text in ["24:00:00", "10", "ab:cd", "10:61", None]:
            assert parse_hour(text) is None, text

    def test_tokens_are_exact(self):
        assert matches_token(" Yes ", "Yes")
        assert not matches_token("yes", "Yes")
        assert not matches_token(None, "Yes")
        assert matches_token("return", "return")
        assert not matches_token("returned", "return")


class TestDataCleaner:
    """Tests for DataCleaner"""

    def test_trim_strings(self):
        """Test string trimming"""
        cleaner = DataCleaner()
        df = pl.DataFrame({
            "item_code": ["  101  ", "102", "  103"],
            "item_name": [" apple ", "pear", "plum "],
        })

        result = cleaner._trim_strings(df)

        assert result["item_code"].to_list() == ["101", "102", "103"]
        assert result["item_name"].to_list() == ["apple", "pear", "plum"]

    def test_blank_becomes_null(self):
        cleaner = DataCleaner()
        df = pl.DataFrame({"quantity_sold": ["1.5", "   ", ""]})

        result = cleaner.clean_text(df)

        assert result["quantity_sold"].to_list() == ["1.5", None, None]

    def test_shouted_names_become_sentence_case(self):
        cleaner = DataCleaner()
        df = pl.DataFrame({
            "item_code": ["1", "2", "3", "4"],
            "item_name": ["WUHU GREEN PEPPER", "Broccoli", "A", None],
            "category_code": ["1", "1", "1", "1"],
            "category_name": ["Capsicum", "Cabbage", "X", "X"],
        })

        result = cleaner.clean_products(df)

        assert result["item_name"].to_list() == ["Wuhu green pepper", "Broccoli", "A", None]
        # Category names are left alone
        assert result["category_name"].to_list() == ["Capsicum", "Cabbage", "X", "X"]

    def test_name_normalisation_can_be_disabled(self):
        df = pl.DataFrame({"item_code": ["1"], "item_name": ["KALE"], "loss_rate": ["1"]})

        result = clean_dataframe(df, "loss_rates", normalize_names=False)

        assert result["item_name"].to_list() == ["KALE"]

    def test_clean_dataframe_generic(self):
        df = pl.DataFrame({"a": [" x ", ""]})

        result = clean_dataframe(df)

        assert result["a"].to_list() == ["x", None]
