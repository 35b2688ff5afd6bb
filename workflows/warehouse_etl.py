"""
Prefect Workflow Orchestration - Warehouse Load

One load window as a flow:
1. Stage the raw files
2. Load the dimension unit
3. Load the fact unit
4. Audit the warehouse

Retries are disabled on every step. A failed unit has already rolled back,
so the recovery is to fix the input and re-run the window.
"""

from typing import Optional

from prefect import flow, task, get_run_logger
from prefect.cache_policies import NO_CACHE

from supermarket_dw.config import get_settings
from supermarket_dw.database.connection import close_database, get_db, init_database
from supermarket_dw.database.schema import create_schema
from supermarket_dw.ingestion.batch_loader import LoadResult, WarehouseLoader
from supermarket_dw.ingestion.staging import StagedData, StagingLoader
from supermarket_dw.quality.consistency import audit_warehouse

settings = get_settings()


class LoadUnitFailed(RuntimeError):
    """An atomic unit rolled back"""


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="stage_files",
    description="Read and clean the four raw input files",
    retries=0,
    cache_policy=NO_CACHE,
)
def stage_files(staging_dir: Optional[str] = None) -> StagedData:
    """Stage the raw files"""
    logger = get_run_logger()
    staged = StagingLoader().stage(staging_dir)
    logger.info(f"Staged rows: {staged.row_counts}")
    return staged


@task(
    name="load_dimensions",
    description="Write all six dimensions as one atomic unit",
    retries=0,
    cache_policy=NO_CACHE,
)
async def load_dimensions(staged: StagedData, incremental: bool = False) -> dict:
    """Dimension unit; raises when it rolled back"""
    logger = get_run_logger()
    result: LoadResult = await WarehouseLoader(incremental=incremental).load_dimensions(staged)

    if not result.succeeded:
        raise LoadUnitFailed(
            f"Dimension unit rolled back ({result.violated_constraint}): {result.error_message}"
        )

    logger.info(f"Dimension rows loaded: {result.rows_loaded}")
    return result.model_dump(mode="json")


@task(
    name="load_facts",
    description="Write the sales fact batch as one atomic unit",
    retries=0,
    cache_policy=NO_CACHE,
)
async def load_facts(staged: StagedData) -> dict:
    """Fact unit; raises when it rolled back"""
    logger = get_run_logger()
    result: LoadResult = await WarehouseLoader().load_facts(staged)

    if not result.succeeded:
        raise LoadUnitFailed(
            f"Fact unit rolled back ({result.violated_constraint}): {result.error_message}"
        )

    logger.info(
        f"Fact rows loaded: {result.total_loaded}, excluded: {result.rows_excluded.get('sales', {})}"
    )
    return result.model_dump(mode="json")


@task(
    name="audit_warehouse",
    description="Orphan, row count and coverage diagnostics",
    retries=0,
    cache_policy=NO_CACHE,
)
async def run_audit() -> dict:
    """Consistency audit"""
    logger = get_run_logger()

    async with get_db() as db:
        report = await audit_warehouse(db)

    if not report.is_consistent:
        logger.warning(f"Orphaned facts found: {report.total_orphans}")

    return report.model_dump(mode="json")


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="warehouse_batch_etl",
    description="Stage, load and audit one supermarket sales window",
    retries=0,
)
async def warehouse_batch_etl(
    staging_dir: Optional[str] = None,
    database_url: Optional[str] = None,
    create: bool = False,
    incremental: bool = False,
) -> dict:
    """
    Warehouse load flow.

    The fact task only runs after the dimension task has committed; a
    dimension failure ends the flow before any fact is built.
    """
    logger = get_run_logger()
    staging_dir = staging_dir or settings.staging.data_dir
    logger.info(f"Starting warehouse load from {staging_dir}")

    await init_database(database_url)
    try:
        if create:
            await create_schema()

        staged = stage_files(staging_dir)
        results = {
            "dimensions": await load_dimensions(staged, incremental),
            "facts": await load_facts(staged),
            "audit": await run_audit(),
        }
    finally:
        await close_database()

    results["status"] = "success"
    return results


# =============================================================================
# DEPLOYMENT CONFIGURATION
# =============================================================================

if __name__ == "__main__":
    import asyncio

    asyncio.run(warehouse_batch_etl())
