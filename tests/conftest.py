"""
Test Suite Configuration
"""
import logging
from typing import AsyncGenerator

import pytest
import structlog

from supermarket_dw.config import PipelineSettings
from supermarket_dw.database.connection import close_database, init_database
from supermarket_dw.database.schema import create_schema
from supermarket_dw.ingestion.staging import StagedData


@pytest.fixture
async def warehouse(tmp_path) -> AsyncGenerator[str, None]:
    """Empty warehouse schema in a throwaway SQLite file"""
    url = f"sqlite+aiosqlite:///{tmp_path / 'warehouse.db'}"
    await init_database(url)
    await create_schema()
    yield url
    await close_database()


@pytest.fixture
def restore_logging():
    """Put back the root handlers and structlog defaults after configure_logging runs"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def pipeline_settings() -> PipelineSettings:
    """Pipeline settings with a tiny chunk size so multi-chunk paths run"""
    return PipelineSettings(chunk_size=2, incremental=False, validate_batches=True)


@pytest.fixture
def sample_products() -> list:
    return [
        {"item_code": "101", "item_name": "apple", "category_code": "1", "category_name": "Fruit"},
        {"item_code": "102", "item_name": "pear", "category_code": "1", "category_name": "Fruit"},
        {"item_code": "103", "item_name": "plum", "category_code": "1", "category_name": "Fruit"},
        {"item_code": "104", "item_name": "kale", "category_code": "2", "category_name": "Greens"},
        {"item_code": "106", "item_name": "mystery", "category_code": None, "category_name": None},
    ]


@pytest.fixture
def sample_sales() -> list:
    return [
        {"sale_date": "2023-06-02", "sale_time": "10:15:00", "item_code": "101",
         "quantity_sold": "2", "unit_price": "3.00", "sale_or_return": "sale", "discount": "No"},
        {"sale_date": "2023-06-02", "sale_time": "18:40:00", "item_code": "101",
         "quantity_sold": "1", "unit_price": "9.00", "sale_or_return": "return", "discount": "No"},
        {"sale_date": "2023-06-02", "sale_time": "09:00:00", "item_code": "102",
         "quantity_sold": "1.5", "unit_price": "4.00", "sale_or_return": "sale", "discount": "Yes"},
        {"sale_date": "2023-06-02", "sale_time": "11:00:00", "item_code": "103",
         "quantity_sold": "2", "unit_price": "5.00", "sale_or_return": "sale", "discount": "No"},
        {"sale_date": "2023-06-02", "sale_time": "12:00:00", "item_code": "101",
         "quantity_sold": "abc", "unit_price": "3.00", "sale_or_return": "sale", "discount": "No"},
        {"sale_date": "2023-06-02", "sale_time": "12:30:00", "item_code": "999",
         "quantity_sold": "1", "unit_price": "3.00", "sale_or_return": "sale", "discount": "No"},
    ]


@pytest.fixture
def sample_prices() -> list:
    return [
        {"price_date": "2023-06-02", "item_code": "101", "wholesale_price": "2.00"},
        {"price_date": "2023-06-02", "item_code": "103", "wholesale_price": "4.00"},
        {"price_date": "2023-06-03", "item_code": "104", "wholesale_price": "1.00"},
    ]


@pytest.fixture
def sample_loss_rates() -> list:
    return [
        {"item_code": "101", "item_name": "apple", "loss_rate": "20"},
        {"item_code": "102", "item_name": "pear", "loss_rate": "10"},
        {"item_code": "103", "item_name": "plum", "loss_rate": "100"},
    ]


@pytest.fixture
def staged(sample_products, sample_sales, sample_prices, sample_loss_rates) -> StagedData:
    """Cleaned staging frames for one small load window"""
    return StagedData.from_records(
        products=sample_products,
        sales=sample_sales,
        prices=sample_prices,
        loss_rates=sample_loss_rates,
    )

