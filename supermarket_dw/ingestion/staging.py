"""
Raw File Staging

Reads the four point-of-sale input files into text-only polars frames.
Columns are taken by position, so header spelling in the source files does
not matter. No value is interpreted here: quantities, prices, dates and codes
all stay as text until the builders validate them row by row.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import hashlib

import polars as pl
import structlog

from supermarket_dw.config import StagingSettings, get_settings
from supermarket_dw.transformation.cleaners import DataCleaner

logger = structlog.get_logger(__name__)
settings = get_settings()

PRODUCT_COLUMNS = ["item_code", "item_name", "category_code", "category_name"]
SALES_COLUMNS = [
    "sale_date",
    "sale_time",
    "item_code",
    "quantity_sold",
    "unit_price",
    "sale_or_return",
    "discount",
]
PRICE_COLUMNS = ["price_date", "item_code", "wholesale_price"]
LOSS_RATE_COLUMNS = ["item_code", "item_name", "loss_rate"]


def text_frame(records: List[Dict[str, Any]], columns: List[str]) -> pl.DataFrame:
    """Build a text-only frame with the given columns from row dicts."""
    schema = {col: pl.Utf8 for col in columns}
    if not records:
        return pl.DataFrame(schema=schema)
    rows = [
        {col: (None if rec.get(col) is None else str(rec.get(col))) for col in columns}
        for rec in records
    ]
    return pl.DataFrame(rows, schema=schema)


@dataclass
class StagedData:
    """Cleaned text frames for one load window"""
    products: pl.DataFrame
    sales: pl.DataFrame
    prices: pl.DataFrame
    loss_rates: pl.DataFrame
    source_dir: Optional[str] = None
    staged_at: Optional[datetime] = None

    @classmethod
    def from_records(
        cls,
        products: Optional[List[Dict[str, Any]]] = None,
        sales: Optional[List[Dict[str, Any]]] = None,
        prices: Optional[List[Dict[str, Any]]] = None,
        loss_rates: Optional[List[Dict[str, Any]]] = None,
        normalize_names: bool = True,
    ) -> "StagedData":
        """Stage in-memory rows, applying the same cleaning as file staging"""
        cleaner = DataCleaner(normalize_names=normalize_names)
        return cls(
            products=cleaner.clean_products(text_frame(products or [], PRODUCT_COLUMNS)),
            sales=cleaner.clean_sales(text_frame(sales or [], SALES_COLUMNS)),
            prices=cleaner.clean_prices(text_frame(prices or [], PRICE_COLUMNS)),
            loss_rates=cleaner.clean_loss_rates(text_frame(loss_rates or [], LOSS_RATE_COLUMNS)),
            staged_at=datetime.utcnow(),
        )

    @property
    def row_counts(self) -> Dict[str, int]:
        return {
            "products": self.products.height,
            "sales": self.sales.height,
            "prices": self.prices.height,
            "loss_rates": self.loss_rates.height,
        }


class StagingLoader:
    """
    Reads raw delimited files into ``StagedData``.

    Example:
        staged = StagingLoader().stage("data/raw")
    """

    def __init__(
        self,
        config: Optional[StagingSettings] = None,
        normalize_names: Optional[bool] = None,
    ):
        self.config = config or settings.staging
        if normalize_names is None:
            normalize_names = settings.pipeline.normalize_product_names
        self.cleaner = DataCleaner(normalize_names=normalize_names)

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for the audit trail"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def read_file(self, file_path: Union[str, Path], columns: List[str]) -> pl.DataFrame:
        """
        Read one delimited file with a header row as text.

        Missing trailing columns are added as nulls; extra columns are dropped.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        df = pl.read_csv(
            file_path,
            separator=self.config.delimiter,
            encoding=self.config.encoding,
            has_header=True,
            infer_schema_length=0,
            null_values=self.config.null_values,
            truncate_ragged_lines=True,
        )

        present = df.columns[: len(columns)]
        df = df.select(present).rename(dict(zip(present, columns[: len(present)])))
        for col in columns[len(present):]:
            df = df.with_columns(pl.lit(None, dtype=pl.Utf8).alias(col))

        logger.info(
            "Staged file read",
            file=str(file_path),
            rows=df.height,
            md5=self._compute_file_hash(file_path),
        )
        return df

    def stage(self, source_dir: Optional[Union[str, Path]] = None) -> StagedData:
        """
        Read and clean all four input files.

        Args:
            source_dir: Directory holding the files; defaults to the configured one

        Returns:
            StagedData with one text frame per input
        """
        directory = Path(source_dir or self.config.data_dir)

        products = self.read_file(directory / self.config.products_file, PRODUCT_COLUMNS)
        sales = self.read_file(directory / self.config.sales_file, SALES_COLUMNS)
        prices = self.read_file(directory / self.config.prices_file, PRICE_COLUMNS)
        loss_rates = self.read_file(directory / self.config.loss_rates_file, LOSS_RATE_COLUMNS)

        staged = StagedData(
            products=self.cleaner.clean_products(products),
            sales=self.cleaner.clean_sales(sales),
            prices=self.cleaner.clean_prices(prices),
            loss_rates=self.cleaner.clean_loss_rates(loss_rates),
            source_dir=str(directory),
            staged_at=datetime.utcnow(),
        )

        logger.info("Staging complete", directory=str(directory), **staged.row_counts)
        return staged
