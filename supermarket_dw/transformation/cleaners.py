"""
Data Cleaning Module

Cleaning transformations for staged point-of-sale text.
Handles:
- Whitespace trimming and blank-to-null normalisation
- Product name case normalisation
- Strict parsing of numeric, date and time text

Staged frames hold every field as text; nothing here raises on dirty input.
Parsers return ``None`` and the builders decide whether a row is excluded.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
import re

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

# Non-negative decimal: digits, optional point, optional digits
DECIMAL_PATTERN = re.compile(r"^[0-9]+\.?[0-9]*$")
ITEM_CODE_PATTERN = re.compile(r"^[0-9]+(\.0+)?$")
TIME_PATTERN = re.compile(r"^(\d{1,2}):([0-5]\d)(?::([0-5]\d)(?:\.\d+)?)?$")

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
]

QUANTITY_PLACES = Decimal("0.001")
MONEY_PLACES = Decimal("0.01")


def parse_decimal(value: Optional[str], places: Decimal = MONEY_PLACES) -> Optional[Decimal]:
    """
    Parse a strict non-negative decimal and round it half-up to ``places``.

    Signs, exponents, thousands separators and currency symbols are rejected.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not DECIMAL_PATTERN.match(text):
        return None
    return Decimal(text).quantize(places, rounding=ROUND_HALF_UP)


def parse_item_code(value: Optional[str]) -> Optional[int]:
    """Parse a strictly positive integer item code."""
    if value is None:
        return None
    text = str(value).strip()
    if not ITEM_CODE_PATTERN.match(text):
        return None
    code = int(text.split(".")[0])
    return code if code > 0 else None


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a calendar date from the accepted layouts."""
    if value is None:
        return None
    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_hour(value: Optional[str]) -> Optional[int]:
    """Extract the integral hour (0-23) from a time of day."""
    if value is None:
        return None
    match = TIME_PATTERN.match(str(value).strip())
    if not match:
        return None
    hour = int(match.group(1))
    return hour if 0 <= hour <= 23 else None


def matches_token(value: Optional[str], token: str) -> bool:
    """True when a flag field equals the given token exactly (after trimming)."""
    return value is not None and str(value).strip() == token


class DataCleaner:
    """
    Cleaner for staged text frames.

    Example:
        cleaner = DataCleaner()
        products = cleaner.clean_products(raw_products)
    """

    def __init__(self, normalize_names: bool = True):
        self.normalize_names = normalize_names

    def _string_columns(self, df: pl.DataFrame) -> List[str]:
        return [col for col, dtype in zip(df.columns, df.dtypes) if dtype == pl.Utf8]

    def _trim_strings(self, df: pl.DataFrame, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """Trim whitespace from string columns"""
        string_cols = columns or self._string_columns(df)

        for col in string_cols:
            if col in df.columns:
                df = df.with_columns(
                    pl.col(col).str.strip_chars().alias(col)
                )

        return df

    def _blank_to_null(self, df: pl.DataFrame, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """Turn empty strings into nulls"""
        string_cols = columns or self._string_columns(df)

        for col in string_cols:
            if col in df.columns:
                df = df.with_columns(
                    pl.when(pl.col(col).str.len_chars() == 0)
                    .then(None)
                    .otherwise(pl.col(col))
                    .alias(col)
                )

        return df

    def _sentence_case_upper(self, df: pl.DataFrame, columns: List[str]) -> pl.DataFrame:
        """Rewrite ALL-CAPS values as 'Sentence case'; mixed-case values are kept"""
        for col in columns:
            if col not in df.columns:
                continue
            value = pl.col(col)
            is_shouting = (
                (value == value.str.to_uppercase())
                & (value != value.str.to_lowercase())
                & (value.str.len_chars() > 1)
            )
            df = df.with_columns(
                pl.when(is_shouting)
                .then(
                    pl.concat_str([
                        value.str.slice(0, 1).str.to_uppercase(),
                        value.str.slice(1).str.to_lowercase(),
                    ])
                )
                .otherwise(value)
                .alias(col)
            )

        return df

    def clean_text(self, df: pl.DataFrame) -> pl.DataFrame:
        """Trim every text column and null out blanks"""
        df = self._trim_strings(df)
        return self._blank_to_null(df)

    def clean_products(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply catalog-specific cleaning"""
        df = self.clean_text(df)
        if self.normalize_names:
            df = self._sentence_case_upper(df, ["item_name"])
        logger.debug("Catalog text cleaned", rows=df.height)
        return df

    def clean_sales(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply sales-log cleaning; numeric text is validated later, row by row"""
        return self.clean_text(df)

    def clean_prices(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply wholesale price cleaning"""
        return self.clean_text(df)

    def clean_loss_rates(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply loss-rate cleaning"""
        df = self.clean_text(df)
        if self.normalize_names:
            df = self._sentence_case_upper(df, ["item_name"])
        return df


def clean_dataframe(
    df: pl.DataFrame,
    data_type: str = "generic",
    normalize_names: bool = True,
) -> pl.DataFrame:
    """
    Convenience function to clean a staged DataFrame.

    Args:
        df: Input DataFrame
        data_type: "products", "sales", "prices", "loss_rates" or "generic"
        normalize_names: Sentence-case all upper-case product names

    Returns:
        Cleaned DataFrame
    """
    cleaner = DataCleaner(normalize_names=normalize_names)

    if data_type == "products":
        return cleaner.clean_products(df)
    elif data_type == "sales":
        return cleaner.clean_sales(df)
    elif data_type == "prices":
        return cleaner.clean_prices(df)
    elif data_type == "loss_rates":
        return cleaner.clean_loss_rates(df)
    else:
        return cleaner.clean_text(df)
