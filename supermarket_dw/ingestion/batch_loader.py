"""
Warehouse Batch Loader

Writes staged data into the star schema as two atomic units:

1. Dimensions: categories, products, calendar days, hours, wholesale prices
   and loss rates, in dependency order, inside one transaction. Surrogate ids
   are read back inside that same transaction to key the dependent builds.
2. Facts: every resolvable sale line, in chunks, inside a second transaction.

Each unit either commits completely or leaves the store untouched. Failures
caused by the data (a pre-insert rule or a store constraint) are reported in
the returned ``LoadResult``; anything else propagates.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence
import re

import structlog
from pydantic import BaseModel, Field
from sqlalchemy import insert, select
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from supermarket_dw.config import PipelineSettings, get_settings
from supermarket_dw.database.connection import get_db, relax_timeouts
from supermarket_dw.database.models import (
    Base,
    CalendarDay,
    Category,
    HourOfDay,
    LossRate,
    PriceRecord,
    Product,
    SaleTransaction,
)
from supermarket_dw.ingestion.staging import StagedData
from supermarket_dw.quality.validators import ValidationStatus, validate_batch
from supermarket_dw.transformation.dimensions import (
    BuildResult,
    build_calendar_days,
    build_categories,
    build_hours,
    build_loss_rates,
    build_price_records,
    build_products,
    filter_existing,
)
from supermarket_dw.transformation.facts import build_sale_transactions

logger = structlog.get_logger(__name__)
settings = get_settings()

_CHECK_FAILED = re.compile(r"CHECK constraint failed: (\w+)")
_UNIQUE_FAILED = re.compile(r"UNIQUE constraint failed: ([\w.]+(?:, [\w.]+)*)")


class LoadUnit(str, Enum):
    """The two atomic units of a load window"""
    DIMENSIONS = "dimensions"
    FACTS = "facts"


class LoadStatus(str, Enum):
    """Batch load status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class LoadResult(BaseModel):
    """Result of one atomic unit"""
    unit: LoadUnit
    status: LoadStatus = LoadStatus.PENDING
    rows_loaded: Dict[str, int] = Field(default_factory=dict)
    rows_excluded: Dict[str, Dict[str, int]] = Field(default_factory=dict)
    error_message: Optional[str] = None
    violated_constraint: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def total_loaded(self) -> int:
        return sum(self.rows_loaded.values())

    @property
    def succeeded(self) -> bool:
        return self.status == LoadStatus.COMPLETED


class BatchRejectedError(Exception):
    """An insert batch failed its pre-insert rules"""

    def __init__(self, entity: str, checks: Sequence[str]):
        self.entity = entity
        self.checks = list(checks)
        super().__init__(f"{entity} batch rejected by: {', '.join(self.checks)}")


def _unique_constraint_for(columns: str) -> Optional[str]:
    """Map SQLite's 'table.col, table.col' listing to the declared constraint name"""
    qualified = [c.strip() for c in columns.split(",")]
    table_name = qualified[0].split(".")[0]
    wanted = {c.split(".")[-1] for c in qualified}
    table = Base.metadata.tables.get(table_name)
    if table is None:
        return None
    for constraint in table.constraints:
        names = {col.name for col in getattr(constraint, "columns", [])}
        if constraint.name and names == wanted:
            return constraint.name
    return None


def violated_constraint(exc: DBAPIError) -> Optional[str]:
    """
    Best-effort name of the store constraint behind a DBAPI error.

    asyncpg and psycopg expose the name directly; SQLite only mentions it in
    the message text.
    """
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
        diag = getattr(candidate, "diag", None)
        if diag is not None and getattr(diag, "constraint_name", None):
            return diag.constraint_name

    message = str(orig if orig is not None else exc)
    match = _CHECK_FAILED.search(message)
    if match:
        return match.group(1)
    match = _UNIQUE_FAILED.search(message)
    if match:
        return _unique_constraint_for(match.group(1)) or match.group(1)
    if "FOREIGN KEY constraint failed" in message:
        return "foreign_key"
    return None


class WarehouseLoader:
    """
    Loads one window of staged data into the warehouse.

    Example:
        loader = WarehouseLoader()
        dims = await loader.load_dimensions(staged)
        if dims.succeeded:
            facts = await loader.load_facts(staged)
    """

    def __init__(
        self,
        config: Optional[PipelineSettings] = None,
        incremental: Optional[bool] = None,
        validate: Optional[bool] = None,
    ):
        self.config = config or settings.pipeline
        self.incremental = self.config.incremental if incremental is None else incremental
        self.validate = self.config.validate_batches if validate is None else validate

    # -------------------------------------------------------------------------
    # helpers
    # -------------------------------------------------------------------------

    async def _lookup(self, db: AsyncSession, key_column, id_column) -> Dict[Any, Any]:
        rows = await db.execute(select(key_column, id_column))
        return {key: value for key, value in rows.all()}

    async def _existing_keys(self, db: AsyncSession, *columns) -> List[Any]:
        rows = (await db.execute(select(*columns))).all()
        if len(columns) == 1:
            return [row[0] for row in rows]
        return [tuple(row) for row in rows]

    async def _write(
        self,
        db: AsyncSession,
        model: type,
        build: BuildResult,
        result: LoadResult,
        existing: Optional[Sequence[Any]] = None,
        key: Optional[Callable[[Dict[str, Any]], Any]] = None,
    ) -> int:
        """Validate one entity batch and insert it in chunks"""
        if existing is not None and key is not None:
            build = filter_existing(build, existing, key)

        build.log()
        result.rows_excluded[build.entity] = dict(build.excluded)

        if self.validate and build.rows:
            validation = validate_batch(build.entity, build.rows)
            if validation.status == ValidationStatus.FAILED:
                raise BatchRejectedError(build.entity, validation.failed_check_names)

        chunk_size = max(1, self.config.chunk_size)
        for start in range(0, len(build.rows), chunk_size):
            await db.execute(insert(model), build.rows[start:start + chunk_size])

        result.rows_loaded[build.entity] = len(build.rows)
        return len(build.rows)

    def _finish(self, result: LoadResult, started_at: datetime) -> LoadResult:
        result.completed_at = datetime.utcnow()
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()
        return result

    def _reject(self, result: LoadResult, message: str, constraint: Optional[str]) -> None:
        result.status = LoadStatus.FAILED
        result.error_message = message
        result.violated_constraint = constraint
        # Nothing from a rolled-back unit is in the store
        result.rows_loaded = {entity: 0 for entity in result.rows_loaded}
        logger.error(
            "Load unit rolled back",
            unit=result.unit.value,
            constraint=constraint,
            error=message,
        )

    # -------------------------------------------------------------------------
    # units
    # -------------------------------------------------------------------------

    async def _load_dimensions(self, db: AsyncSession, staged: StagedData, result: LoadResult) -> None:
        incremental = self.incremental

        categories = build_categories(staged.products)
        await self._write(
            db, Category, categories, result,
            existing=await self._existing_keys(db, Category.code) if incremental else None,
            key=lambda r: r["code"],
        )
        category_ids = await self._lookup(db, Category.code, Category.id)

        products = build_products(staged.products, category_ids)
        await self._write(
            db, Product, products, result,
            existing=await self._existing_keys(db, Product.item_code) if incremental else None,
            key=lambda r: r["item_code"],
        )
        product_ids = await self._lookup(db, Product.item_code, Product.id)

        calendar = build_calendar_days(staged.sales, staged.prices, self.config.week_starts_on)
        await self._write(
            db, CalendarDay, calendar, result,
            existing=await self._existing_keys(db, CalendarDay.date) if incremental else None,
            key=lambda r: r["date"],
        )
        date_ids = await self._lookup(db, CalendarDay.date, CalendarDay.id)

        hours = build_hours()
        await self._write(
            db, HourOfDay, hours, result,
            existing=await self._existing_keys(db, HourOfDay.hour) if incremental else None,
            key=lambda r: r["hour"],
        )

        prices = build_price_records(staged.prices, product_ids, date_ids)
        await self._write(
            db, PriceRecord, prices, result,
            existing=(
                await self._existing_keys(db, PriceRecord.product_id, PriceRecord.date_id)
                if incremental else None
            ),
            key=lambda r: (r["product_id"], r["date_id"]),
        )

        loss_rates = build_loss_rates(staged.loss_rates, product_ids)
        await self._write(
            db, LossRate, loss_rates, result,
            existing=await self._existing_keys(db, LossRate.product_id) if incremental else None,
            key=lambda r: r["product_id"],
        )

    async def load_dimensions(self, staged: StagedData) -> LoadResult:
        """
        Build and write all six dimensions as one atomic unit.

        Args:
            staged: Cleaned staging frames

        Returns:
            LoadResult; FAILED means no dimension row was written
        """
        started_at = datetime.utcnow()
        result = LoadResult(unit=LoadUnit.DIMENSIONS, status=LoadStatus.RUNNING, started_at=started_at)

        logger.info("Starting dimension load", incremental=self.incremental)

        try:
            async with get_db() as db:
                await self._load_dimensions(db, staged, result)
            result.status = LoadStatus.COMPLETED
        except BatchRejectedError as e:
            self._reject(result, str(e), ", ".join(e.checks))
        except (IntegrityError, DataError) as e:
            self._reject(result, str(e.orig), violated_constraint(e))

        self._finish(result, started_at)
        logger.info(
            "Dimension load finished",
            status=result.status.value,
            rows_loaded=result.rows_loaded,
            duration_seconds=result.load_duration_seconds,
        )
        return result

    async def load_facts(self, staged: StagedData) -> LoadResult:
        """
        Build and write the fact batch as one atomic unit.

        Dimension keys are read from the store, so this runs after a
        committed dimension unit.
        """
        started_at = datetime.utcnow()
        result = LoadResult(unit=LoadUnit.FACTS, status=LoadStatus.RUNNING, started_at=started_at)

        logger.info("Starting fact load", rows=staged.sales.height)

        try:
            async with get_db() as db:
                await relax_timeouts(db)

                product_ids: Dict[int, int] = await self._lookup(db, Product.item_code, Product.id)
                date_ids: Dict[date, int] = await self._lookup(db, CalendarDay.date, CalendarDay.id)
                hours = set(await self._existing_keys(db, HourOfDay.hour))

                sales = build_sale_transactions(
                    staged.sales,
                    product_ids,
                    date_ids,
                    hours,
                    return_token=self.config.return_token,
                    discount_token=self.config.discount_token,
                )
                await self._write(db, SaleTransaction, sales, result)
            result.status = LoadStatus.COMPLETED
        except BatchRejectedError as e:
            self._reject(result, str(e), ", ".join(e.checks))
        except (IntegrityError, DataError) as e:
            self._reject(result, str(e.orig), violated_constraint(e))

        self._finish(result, started_at)
        logger.info(
            "Fact load finished",
            status=result.status.value,
            rows_loaded=result.total_loaded,
            excluded=result.rows_excluded.get("sales", {}),
            duration_seconds=result.load_duration_seconds,
        )
        return result
