"""
Margin Metrics

Gross margin for a product on a day is the mean selling price of its
non-return lines minus that day's wholesale price. The loss-adjusted margin
spreads the gross margin over the share of stock that survives spoilage.

Missing inputs never raise: no sales or no wholesale price gives a gross
margin of 0, and no loss rate (or a rate of 100% or more) leaves the gross
margin unadjusted.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from supermarket_dw.database.models import LossRate, PriceRecord, SaleTransaction

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _as_decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def average_price(prices: Iterable) -> Optional[Decimal]:
    """Mean of the given prices rounded to cents, or None when there are none"""
    values = [_as_decimal(p) for p in prices if p is not None]
    if not values:
        return None
    return _round(sum(values) / len(values))


def gross_margin(avg_price: Optional[Decimal], wholesale_price: Optional[Decimal]) -> Decimal:
    """Average selling price minus wholesale price; 0 when either is missing"""
    if avg_price is None or wholesale_price is None:
        return ZERO
    return _round(_as_decimal(avg_price) - _as_decimal(wholesale_price))


def loss_adjusted_margin(gross: Decimal, loss_rate: Optional[Decimal]) -> Decimal:
    """
    Gross margin divided by the surviving stock fraction.

    ``gross / (1 - loss_rate / 100)`` when a rate below 100 is known,
    otherwise the gross margin itself.
    """
    gross = _as_decimal(gross)
    rate = _as_decimal(loss_rate)
    if rate is None or rate >= HUNDRED:
        return _round(gross)
    return _round(gross / (1 - rate / HUNDRED))


async def compute_gross_margin(db: AsyncSession, product_id: int, date_id: int) -> Decimal:
    """
    Gross margin of a product on a calendar day.

    Args:
        db: Open session
        product_id: ``dim_products.id``
        date_id: ``dim_calendar.id``
    """
    prices = (
        await db.execute(
            select(SaleTransaction.unit_price).where(
                SaleTransaction.product_id == product_id,
                SaleTransaction.date_id == date_id,
                SaleTransaction.is_return.is_(False),
            )
        )
    ).scalars().all()

    wholesale = await db.scalar(
        select(PriceRecord.wholesale_price).where(
            PriceRecord.product_id == product_id,
            PriceRecord.date_id == date_id,
        )
    )

    margin = gross_margin(average_price(prices), wholesale)
    logger.debug(
        "Gross margin computed",
        product_id=product_id,
        date_id=date_id,
        lines=len(prices),
        has_wholesale=wholesale is not None,
        margin=str(margin),
    )
    return margin


async def compute_loss_adjusted_margin(
    db: AsyncSession,
    product_id: int,
    date_id: int,
    gross: Optional[Decimal] = None,
) -> Decimal:
    """
    Gross margin of a product on a day, adjusted by its loss rate.

    A gross margin already computed for the same pair can be passed in to
    skip recomputing it.
    """
    if gross is None:
        gross = await compute_gross_margin(db, product_id, date_id)
    rate = await db.scalar(
        select(LossRate.loss_rate).where(LossRate.product_id == product_id)
    )
    return loss_adjusted_margin(gross, rate)
