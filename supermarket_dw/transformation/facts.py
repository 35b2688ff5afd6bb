"""
Fact Builder

Resolves each staged sale line to its calendar, hour and product keys and
computes the line total. Lines that cannot be resolved are left out and
counted by reason; a line that parses but breaks a store rule (a zero
quantity, say) is kept so the fact unit rejects the batch as a whole.
"""

from datetime import date
from decimal import ROUND_HALF_UP
from typing import Collection, Dict

import polars as pl
import structlog

from .cleaners import (
    MONEY_PLACES,
    QUANTITY_PLACES,
    matches_token,
    parse_date,
    parse_decimal,
    parse_hour,
    parse_item_code,
)
from .dimensions import BuildResult

logger = structlog.get_logger(__name__)


def build_sale_transactions(
    sales_df: pl.DataFrame,
    product_ids: Dict[int, int],
    date_ids: Dict[date, int],
    hours: Collection[int],
    return_token: str = "return",
    discount_token: str = "Yes",
) -> BuildResult:
    """
    Build the fact batch for one load window.

    Args:
        sales_df: Cleaned sales log frame
        product_ids: Item code -> ``dim_products.id``
        date_ids: Calendar date -> ``dim_calendar.id``
        hours: Hours present in ``dim_hours``
        return_token: Sale-or-return value marking a return
        discount_token: Discount value marking a discounted line

    Returns:
        BuildResult with one row per kept sale line
    """
    result = BuildResult(entity="sales", rows=[])

    for record in sales_df.iter_rows(named=True):
        quantity = parse_decimal(record["quantity_sold"], QUANTITY_PLACES)
        if quantity is None:
            result.excluded["invalid_quantity"] += 1
            continue
        unit_price = parse_decimal(record["unit_price"], MONEY_PLACES)
        if unit_price is None:
            result.excluded["invalid_unit_price"] += 1
            continue
        product_id = product_ids.get(parse_item_code(record["item_code"]))
        if product_id is None:
            result.excluded["unknown_product"] += 1
            continue
        date_id = date_ids.get(parse_date(record["sale_date"]))
        if date_id is None:
            result.excluded["unknown_date"] += 1
            continue
        hour = parse_hour(record["sale_time"])
        if hour is None or hour not in hours:
            result.excluded["invalid_time"] += 1
            continue

        result.rows.append({
            "date_id": date_id,
            "hour_id": hour,
            "product_id": product_id,
            "quantity": quantity,
            "unit_price": unit_price,
            "total_amount": (quantity * unit_price).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP),
            "has_discount": matches_token(record["discount"], discount_token),
            "is_return": matches_token(record["sale_or_return"], return_token),
        })

    return result
