"""
Warehouse Schema Management

Creates and drops the star schema tables and the denormalized sales view.
"""

import structlog
from sqlalchemy import text

from .connection import get_engine
from .models import Base

logger = structlog.get_logger(__name__)

SALES_VIEW_NAME = "vw_sales_complete"

# Fact joined to every dimension; the reporting layer reads only this view
# and the margin operations.
SALES_VIEW_SQL = f"""
CREATE VIEW {SALES_VIEW_NAME} AS
SELECT
    s.id AS sale_id,
    s.quantity,
    s.unit_price,
    s.total_amount,
    s.has_discount,
    s.is_return,
    c.id AS date_id,
    c.date,
    c.day,
    c.month,
    c.year,
    c.quarter,
    c.weekday,
    c.day_name,
    c.month_name,
    c.is_weekend,
    h.hour,
    h.period,
    p.id AS product_id,
    p.item_code,
    p.name AS item_name,
    cat.code AS category_code,
    cat.name AS category_name
FROM fact_sales s
    INNER JOIN dim_calendar c ON s.date_id = c.id
    INNER JOIN dim_hours h ON s.hour_id = h.hour
    INNER JOIN dim_products p ON s.product_id = p.id
    INNER JOIN dim_categories cat ON p.category_id = cat.id
"""


async def create_schema() -> None:
    """Create all warehouse tables, indexes and the sales view."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.execute(text(f"DROP VIEW IF EXISTS {SALES_VIEW_NAME}"))
        await conn.execute(text(SALES_VIEW_SQL))
    logger.info("Warehouse schema created", tables=len(Base.metadata.tables), view=SALES_VIEW_NAME)


async def drop_schema() -> None:
    """Drop the sales view and every warehouse table."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(text(f"DROP VIEW IF EXISTS {SALES_VIEW_NAME}"))
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Warehouse schema dropped")
