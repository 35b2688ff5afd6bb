"""
Audit API Endpoint

Exposes the warehouse consistency report.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from supermarket_dw.database.connection import get_db_dependency
from supermarket_dw.quality.consistency import ConsistencyReport, audit_warehouse

router = APIRouter()


@router.get("", response_model=ConsistencyReport)
async def get_audit(db: AsyncSession = Depends(get_db_dependency)) -> ConsistencyReport:
    """Orphan counts, row counts, calendar span, unsold products and returns."""
    return await audit_warehouse(db)
