"""
Warehouse ETL

Runs one load window end to end: stage the raw files, load the dimension
unit, load the fact unit, then audit the result. The fact unit only starts
once the dimension unit has committed.
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Union

import structlog

from supermarket_dw.config import PipelineSettings, get_settings
from supermarket_dw.config.logging import configure_logging
from supermarket_dw.database.connection import close_database, get_db, init_database
from supermarket_dw.database.schema import create_schema, drop_schema
from supermarket_dw.ingestion.batch_loader import LoadResult, WarehouseLoader
from supermarket_dw.ingestion.staging import StagedData, StagingLoader
from supermarket_dw.quality.consistency import ConsistencyReport, audit_warehouse

logger = structlog.get_logger(__name__)
settings = get_settings()


@dataclass
class PipelineResult:
    """Result of one load window"""
    staged_rows: Dict[str, int]
    dimensions: LoadResult
    facts: Optional[LoadResult] = None
    audit: Optional[ConsistencyReport] = None
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0
    errors: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return (
            self.dimensions.succeeded
            and self.facts is not None
            and self.facts.succeeded
        )


class WarehouseETL:
    """
    Load-window orchestrator.

    Example:
        etl = WarehouseETL()
        result = await etl.run("data/raw")
    """

    def __init__(
        self,
        config: Optional[PipelineSettings] = None,
        incremental: Optional[bool] = None,
    ):
        self.config = config or settings.pipeline
        self.stager = StagingLoader(normalize_names=self.config.normalize_product_names)
        self.loader = WarehouseLoader(self.config, incremental=incremental)

    async def load(self, staged: StagedData) -> PipelineResult:
        """Load already staged data and audit the warehouse"""
        started_at = datetime.utcnow()

        dimensions = await self.loader.load_dimensions(staged)
        result = PipelineResult(
            staged_rows=staged.row_counts,
            dimensions=dimensions,
            started_at=started_at,
        )

        if not dimensions.succeeded:
            result.errors.append(dimensions.error_message or "dimension load failed")
            logger.error("Dimension unit failed; fact unit skipped")
        else:
            result.facts = await self.loader.load_facts(staged)
            if not result.facts.succeeded:
                result.errors.append(result.facts.error_message or "fact load failed")

        async with get_db() as db:
            result.audit = await audit_warehouse(db)

        result.completed_at = datetime.utcnow()
        result.duration_seconds = (result.completed_at - started_at).total_seconds()

        logger.info(
            "Load window complete",
            succeeded=result.succeeded,
            dimension_rows=dimensions.rows_loaded,
            fact_rows=result.facts.total_loaded if result.facts else 0,
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result

    async def run(self, staging_dir: Optional[Union[str, Path]] = None) -> PipelineResult:
        """
        Stage the four input files from ``staging_dir`` and load them.

        Args:
            staging_dir: Directory holding the raw files

        Returns:
            PipelineResult
        """
        logger.info("Starting load window", staging_dir=str(staging_dir or settings.staging.data_dir))
        staged = self.stager.stage(staging_dir)
        return await self.load(staged)


async def run_pipeline(
    staging_dir: Optional[str] = None,
    database_url: Optional[str] = None,
    create: bool = False,
    incremental: Optional[bool] = None,
    recreate: bool = False,
) -> PipelineResult:
    """
    Open the store, prepare the schema and run one load window.

    ``recreate`` drops every warehouse table and the sales view first, so the
    window loads into an empty schema.
    """
    await init_database(database_url)
    try:
        if recreate:
            await drop_schema()
        if create or recreate:
            await create_schema()
        return await WarehouseETL(incremental=incremental).run(staging_dir)
    finally:
        await close_database()


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point"""
    parser = argparse.ArgumentParser(description="Load supermarket POS files into the warehouse")
    parser.add_argument("--staging-dir", type=str, default=None, help="Directory with the raw input files")
    parser.add_argument("--database-url", type=str, default=None, help="Async SQLAlchemy URL")
    parser.add_argument("--create-schema", action="store_true", help="Create tables and the sales view first")
    parser.add_argument("--recreate-schema", action="store_true", help="Drop and recreate the schema first")
    parser.add_argument("--incremental", action="store_true", help="Skip natural keys already loaded")
    parser.add_argument("--log-level", type=str, default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-format", choices=["json", "console"], default=None, help="Override LOG_FORMAT")

    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    result = asyncio.run(
        run_pipeline(
            staging_dir=args.staging_dir,
            database_url=args.database_url,
            create=args.create_schema,
            incremental=True if args.incremental else None,
            recreate=args.recreate_schema,
        )
    )

    for error in result.errors:
        print(f"ERROR: {error}", file=sys.stderr)
    return 0 if result.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
