"""
Dimension Builders

Turns cleaned staging frames into insert batches for the six dimensions.
Builders are pure: they take frames plus the surrogate ids already resolved
for the dimensions they depend on, and return plain row dicts together with
per-reason exclusion counts. Writing is left to the batch loader.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List

import polars as pl
import structlog

from supermarket_dw.database.models import DayPeriod
from .cleaners import (
    MONEY_PLACES,
    parse_date,
    parse_decimal,
    parse_item_code,
)

logger = structlog.get_logger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


@dataclass
class BuildResult:
    """Insert batch for one entity plus the reasons rows were left out"""
    entity: str
    rows: List[Dict[str, Any]]
    excluded: Counter = field(default_factory=Counter)

    @property
    def excluded_total(self) -> int:
        return sum(self.excluded.values())

    def log(self) -> None:
        logger.info(
            "Batch built",
            entity=self.entity,
            rows=len(self.rows),
            excluded=self.excluded_total,
            reasons=dict(self.excluded),
        )


def _distinct(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Drop exact duplicate rows, keeping first-seen order"""
    seen = set()
    unique = []
    for row in rows:
        key = tuple(row.items())
        if key in seen:
            continue
        seen.add(key)
        unique.append(row)
    return unique


# =============================================================================
# CATEGORY / PRODUCT
# =============================================================================

def build_categories(products_df: pl.DataFrame) -> BuildResult:
    """
    Distinct (code, name) pairs from the catalog, ordered by code.

    A code listed with two different names yields two rows; the uniqueness
    rule on ``code`` then rejects the whole dimension unit.
    """
    result = BuildResult(entity="categories", rows=[])
    rows = []

    for record in products_df.iter_rows(named=True):
        code, name = record["category_code"], record["category_name"]
        if code is None or name is None:
            result.excluded["missing_category"] += 1
            continue
        rows.append({"code": code, "name": name})

    result.rows = sorted(_distinct(rows), key=lambda r: (r["code"], r["name"]))
    return result


def build_products(products_df: pl.DataFrame, category_ids: Dict[str, int]) -> BuildResult:
    """
    Distinct products joined to their category surrogate id.

    Args:
        products_df: Cleaned catalog frame
        category_ids: Category code -> ``dim_categories.id``
    """
    result = BuildResult(entity="products", rows=[])
    rows = []

    for record in products_df.iter_rows(named=True):
        item_code = parse_item_code(record["item_code"])
        if item_code is None:
            result.excluded["invalid_item_code"] += 1
            continue
        if record["item_name"] is None:
            result.excluded["missing_name"] += 1
            continue
        category_id = category_ids.get(record["category_code"])
        if category_id is None:
            result.excluded["unknown_category"] += 1
            continue
        rows.append({
            "item_code": item_code,
            "name": record["item_name"],
            "category_id": category_id,
        })

    result.rows = _distinct(rows)
    return result


# =============================================================================
# CALENDAR / HOURS
# =============================================================================

def calendar_attributes(value: date, week_starts_on: str = "sunday") -> Dict[str, Any]:
    """
    Every calendar attribute derived from a single date.

    With ``week_starts_on="sunday"`` weekdays run 1 (Sunday) to 7 (Saturday)
    and the weekend is {1, 7}. With ``"monday"`` they run 1 (Monday) to
    7 (Sunday) and the weekend is {6, 7}.
    """
    if week_starts_on == "monday":
        weekday = value.isoweekday()
        is_weekend = weekday in (6, 7)
    else:
        weekday = value.isoweekday() % 7 + 1
        is_weekend = weekday in (1, 7)

    return {
        "date": value,
        "day": value.day,
        "month": value.month,
        "year": value.year,
        "quarter": (value.month - 1) // 3 + 1,
        "weekday": weekday,
        "day_name": DAY_NAMES[value.weekday()],
        "month_name": MONTH_NAMES[value.month - 1],
        "is_weekend": is_weekend,
    }


def build_calendar_days(
    sales_df: pl.DataFrame,
    prices_df: pl.DataFrame,
    week_starts_on: str = "sunday",
) -> BuildResult:
    """One calendar row per distinct parseable date in sales or prices"""
    result = BuildResult(entity="calendar", rows=[])
    dates = set()
    invalid = set()

    for texts in (sales_df["sale_date"].to_list(), prices_df["price_date"].to_list()):
        for text in texts:
            if text is None:
                continue
            parsed = parse_date(text)
            if parsed is None:
                invalid.add(text)
            else:
                dates.add(parsed)

    if invalid:
        result.excluded["invalid_date"] = len(invalid)

    result.rows = [calendar_attributes(d, week_starts_on) for d in sorted(dates)]
    return result


def hour_period(hour: int) -> DayPeriod:
    """Part of the day for an hour in 0-23"""
    if hour < 6:
        return DayPeriod.DAWN
    elif hour < 12:
        return DayPeriod.MORNING
    elif hour < 18:
        return DayPeriod.AFTERNOON
    return DayPeriod.NIGHT


def build_hours() -> BuildResult:
    """The fixed 24-row hour lookup"""
    return BuildResult(
        entity="hours",
        rows=[{"hour": h, "period": hour_period(h).value} for h in range(24)],
    )


# =============================================================================
# PRICE / LOSS RATE
# =============================================================================

def build_price_records(
    prices_df: pl.DataFrame,
    product_ids: Dict[int, int],
    date_ids: Dict[date, int],
) -> BuildResult:
    """
    Wholesale prices resolved to product and calendar ids.

    Args:
        prices_df: Cleaned price history frame
        product_ids: Item code -> ``dim_products.id``
        date_ids: Calendar date -> ``dim_calendar.id``
    """
    result = BuildResult(entity="prices", rows=[])
    rows = []

    for record in prices_df.iter_rows(named=True):
        price = parse_decimal(record["wholesale_price"], MONEY_PLACES)
        if price is None:
            result.excluded["invalid_wholesale_price"] += 1
            continue
        product_id = product_ids.get(parse_item_code(record["item_code"]))
        if product_id is None:
            result.excluded["unknown_product"] += 1
            continue
        date_id = date_ids.get(parse_date(record["price_date"]))
        if date_id is None:
            result.excluded["unknown_date"] += 1
            continue
        rows.append({"product_id": product_id, "date_id": date_id, "wholesale_price": price})

    result.rows = _distinct(rows)
    return result


def build_loss_rates(loss_df: pl.DataFrame, product_ids: Dict[int, int]) -> BuildResult:
    """Loss percentages resolved to product ids"""
    result = BuildResult(entity="loss_rates", rows=[])
    rows = []

    for record in loss_df.iter_rows(named=True):
        rate = parse_decimal(record["loss_rate"], MONEY_PLACES)
        if rate is None:
            result.excluded["invalid_loss_rate"] += 1
            continue
        product_id = product_ids.get(parse_item_code(record["item_code"]))
        if product_id is None:
            result.excluded["unknown_product"] += 1
            continue
        rows.append({"product_id": product_id, "loss_rate": rate})

    result.rows = _distinct(rows)
    return result


def filter_existing(
    result: BuildResult,
    existing: Iterable[Any],
    key: Callable[[Dict[str, Any]], Any],
) -> BuildResult:
    """
    Drop rows whose natural key is already stored (incremental loads).

    Args:
        result: Batch to filter
        existing: Natural keys already present in the store
        key: Callable mapping a row to its natural key
    """
    existing = set(existing)
    kept = [row for row in result.rows if key(row) not in existing]
    skipped = len(result.rows) - len(kept)
    if skipped:
        result.excluded["already_loaded"] += skipped
    result.rows = kept
    return result
