"""
Margin API Endpoints

Gross and loss-adjusted margin for one product on one calendar day.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from supermarket_dw.analytics.margins import compute_gross_margin, compute_loss_adjusted_margin
from supermarket_dw.database.connection import get_db_dependency
from supermarket_dw.database.models import CalendarDay, Product

router = APIRouter()
logger = structlog.get_logger(__name__)


class MarginResponse(BaseModel):
    """Margins for a product/day pair"""
    product_id: int
    date_id: int
    gross_margin: Decimal
    loss_adjusted_margin: Decimal


@router.get("/{product_id}/{date_id}", response_model=MarginResponse)
async def get_margins(
    product_id: int,
    date_id: int,
    db: AsyncSession = Depends(get_db_dependency),
) -> MarginResponse:
    """
    Margins for a product on a day.

    Unknown product or day ids are a 404; a known pair with no sales or no
    wholesale price yields zero margins.
    """
    if await db.get(Product, product_id) is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    if await db.get(CalendarDay, date_id) is None:
        raise HTTPException(status_code=404, detail=f"Calendar day {date_id} not found")

    gross = await compute_gross_margin(db, product_id, date_id)
    adjusted = await compute_loss_adjusted_margin(db, product_id, date_id, gross=gross)
    logger.debug("Margins served", product_id=product_id, date_id=date_id)

    return MarginResponse(
        product_id=product_id,
        date_id=date_id,
        gross_margin=gross,
        loss_adjusted_margin=adjusted,
    )
