"""
Warehouse Consistency Audit

Read-only diagnostics over a loaded warehouse: orphaned fact references,
row counts per table, the calendar span, products that never sold and the
number of returns. Problems are reported and logged, never repaired.
"""

from datetime import date, datetime
from typing import Dict, Optional

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from supermarket_dw.database.models import (
    WAREHOUSE_MODELS,
    CalendarDay,
    HourOfDay,
    Product,
    SaleTransaction,
)

logger = structlog.get_logger(__name__)


class ConsistencyReport(BaseModel):
    """Snapshot of warehouse health"""
    row_counts: Dict[str, int] = Field(default_factory=dict)
    orphan_products: int = 0
    orphan_dates: int = 0
    orphan_hours: int = 0
    first_date: Optional[date] = None
    last_date: Optional[date] = None
    days_spanned: int = 0
    products_without_sales: int = 0
    return_count: int = 0
    checked_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def total_orphans(self) -> int:
        return self.orphan_products + self.orphan_dates + self.orphan_hours

    @property
    def is_consistent(self) -> bool:
        return self.total_orphans == 0


async def _count(db: AsyncSession, statement) -> int:
    return int(await db.scalar(statement) or 0)


async def count_orphans(db: AsyncSession) -> Dict[str, int]:
    """Facts whose product, calendar day or hour no longer exists"""
    orphan_products = (
        select(func.count())
        .select_from(SaleTransaction)
        .outerjoin(Product, SaleTransaction.product_id == Product.id)
        .where(Product.id.is_(None))
    )
    orphan_dates = (
        select(func.count())
        .select_from(SaleTransaction)
        .outerjoin(CalendarDay, SaleTransaction.date_id == CalendarDay.id)
        .where(CalendarDay.id.is_(None))
    )
    orphan_hours = (
        select(func.count())
        .select_from(SaleTransaction)
        .outerjoin(HourOfDay, SaleTransaction.hour_id == HourOfDay.hour)
        .where(HourOfDay.hour.is_(None))
    )
    return {
        "orphan_products": await _count(db, orphan_products),
        "orphan_dates": await _count(db, orphan_dates),
        "orphan_hours": await _count(db, orphan_hours),
    }


async def count_rows(db: AsyncSession) -> Dict[str, int]:
    """Row count for every warehouse table"""
    counts = {}
    for model in WAREHOUSE_MODELS:
        counts[model.__tablename__] = await _count(db, select(func.count()).select_from(model))
    return counts


async def audit_warehouse(db: AsyncSession) -> ConsistencyReport:
    """
    Run every consistency query and log what looks wrong.

    Args:
        db: Open session

    Returns:
        ConsistencyReport
    """
    orphans = await count_orphans(db)
    row_counts = await count_rows(db)

    first_date, last_date = (
        await db.execute(select(func.min(CalendarDay.date), func.max(CalendarDay.date)))
    ).one()
    days_spanned = (last_date - first_date).days + 1 if first_date and last_date else 0

    products_without_sales = await _count(
        db,
        select(func.count())
        .select_from(Product)
        .where(~exists().where(SaleTransaction.product_id == Product.id)),
    )
    return_count = await _count(
        db,
        select(func.count())
        .select_from(SaleTransaction)
        .where(SaleTransaction.is_return.is_(True)),
    )

    report = ConsistencyReport(
        row_counts=row_counts,
        first_date=first_date,
        last_date=last_date,
        days_spanned=days_spanned,
        products_without_sales=products_without_sales,
        return_count=return_count,
        **orphans,
    )

    for name, count in orphans.items():
        if count:
            logger.warning("Orphaned facts found", check=name, count=count)

    logger.info(
        "Consistency audit complete",
        consistent=report.is_consistent,
        rows=row_counts,
        products_without_sales=products_without_sales,
        returns=return_count,
    )
    return report
