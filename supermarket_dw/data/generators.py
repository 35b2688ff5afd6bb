"""
Synthetic Data Generator

Generates the four raw point-of-sale files for testing and development:
- Product catalog grouped into produce categories
- Daily wholesale prices per product
- Loss rates per product
- Sale and return lines with realistic hours and markups

A configurable share of rows is made dirty (blank or malformed numbers,
unknown item codes, padded text, shouted names) so the cleaning and
exclusion paths get exercised.
"""

from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import polars as pl
import structlog
from faker import Faker

from supermarket_dw.config import get_settings
from supermarket_dw.ingestion.staging import (
    LOSS_RATE_COLUMNS,
    PRICE_COLUMNS,
    PRODUCT_COLUMNS,
    SALES_COLUMNS,
)

logger = structlog.get_logger(__name__)
settings = get_settings()


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    ("1011010101", "Flower/Leaf Vegetables"),
    ("1011010201", "Cabbage"),
    ("1011010402", "Aquatic Tuberous Vegetables"),
    ("1011010501", "Solanum"),
    ("1011010504", "Capsicum"),
    ("1011010801", "Edible Mushroom"),
]

BASE_ITEM_CODE = 102900005115000

# Trading hours skew towards mornings and early evenings
HOUR_WEIGHTS = np.array(
    [0, 0, 0, 0, 0, 0, 1, 2, 6, 9, 10, 9, 7, 5, 4, 5, 6, 8, 9, 7, 4, 2, 1, 0],
    dtype=float,
)

DIRTY_NUMBERS = ["", "abc", "-1.5", "12,5", "1e3", "$4.20"]


# =============================================================================
# GENERATOR
# =============================================================================

class SupermarketDataGenerator:
    """
    Generate a consistent set of raw input files.

    Example:
        generator = SupermarketDataGenerator(seed=7)
        paths = generator.write_files("data/raw", n_products=40, n_days=14)
    """

    def __init__(self, seed: int = 42, dirty_fraction: float = 0.02):
        self.rng = np.random.default_rng(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.dirty_fraction = dirty_fraction

    def _is_dirty(self, n: int) -> np.ndarray:
        return self.rng.random(n) < self.dirty_fraction

    def generate_products(self, n: int = 50) -> pl.DataFrame:
        """Product catalog with unique item codes"""
        categories = self.rng.integers(0, len(CATEGORIES), n)
        shout = self._is_dirty(n)
        rows = []

        for i in range(n):
            code, category_name = CATEGORIES[categories[i]]
            name = f"{self.fake.word().title()} {self.fake.word()}"
            rows.append({
                "item_code": str(BASE_ITEM_CODE + i),
                "item_name": name.upper() if shout[i] else name,
                "category_code": code,
                "category_name": category_name,
            })

        return pl.DataFrame(rows, schema={c: pl.Utf8 for c in PRODUCT_COLUMNS})

    def generate_prices(self, products: pl.DataFrame, dates: List[date]) -> pl.DataFrame:
        """Wholesale price per product per day, drifting around a base price"""
        item_codes = products["item_code"].to_list()
        base = self.rng.uniform(0.8, 12.0, len(item_codes))
        rows = []

        for day in dates:
            drift = self.rng.normal(1.0, 0.05, len(item_codes))
            prices = np.maximum(np.round(base * drift, 2), 0.1)
            for item_code, price in zip(item_codes, prices):
                rows.append({
                    "price_date": day.isoformat(),
                    "item_code": item_code,
                    "wholesale_price": f"{price:.2f}",
                })

        return pl.DataFrame(rows, schema={c: pl.Utf8 for c in PRICE_COLUMNS})

    def generate_loss_rates(self, products: pl.DataFrame) -> pl.DataFrame:
        """One loss percentage per product"""
        rates = np.round(self.rng.uniform(0, 30, products.height), 2)
        return pl.DataFrame(
            {
                "item_code": products["item_code"],
                "item_name": products["item_name"],
                "loss_rate": [f"{r:.2f}" for r in rates],
            },
            schema={c: pl.Utf8 for c in LOSS_RATE_COLUMNS},
        )

    def generate_sales(
        self,
        products: pl.DataFrame,
        prices: pl.DataFrame,
        n: int = 5000,
        return_rate: float = 0.01,
        discount_rate: float = 0.1,
    ) -> pl.DataFrame:
        """Sale lines priced at a markup over that day's wholesale price"""
        wholesale = {
            (r["price_date"], r["item_code"]): float(r["wholesale_price"])
            for r in prices.iter_rows(named=True)
        }
        keys = list(wholesale.keys())
        picks = self.rng.integers(0, len(keys), n)
        hours = self.rng.choice(24, size=n, p=HOUR_WEIGHTS / HOUR_WEIGHTS.sum())
        minutes = self.rng.integers(0, 60, n)
        seconds = self.rng.integers(0, 60, n)
        quantities = np.round(self.rng.gamma(2.0, 0.4, n) + 0.05, 3)
        markups = self.rng.uniform(1.2, 1.9, n)
        returns = self.rng.random(n) < return_rate
        discounts = self.rng.random(n) < discount_rate
        dirty = self._is_dirty(n)

        rows = []
        for i in range(n):
            sale_date, item_code = keys[picks[i]]
            row = {
                "sale_date": sale_date,
                "sale_time": f"{hours[i]:02d}:{minutes[i]:02d}:{seconds[i]:02d}",
                "item_code": item_code,
                "quantity_sold": f"{quantities[i]:.3f}",
                "unit_price": f"{wholesale[(sale_date, item_code)] * markups[i]:.2f}",
                "sale_or_return": "return" if returns[i] else "sale",
                "discount": "Yes" if discounts[i] else "No",
            }
            if dirty[i]:
                row = self._dirty_sale(row)
            rows.append(row)

        return pl.DataFrame(rows, schema={c: pl.Utf8 for c in SALES_COLUMNS})

    def _dirty_sale(self, row: Dict[str, str]) -> Dict[str, str]:
        """Damage one field of a sale line the way real exports get damaged"""
        kind = self.rng.integers(0, 4)
        if kind == 0:
            row["quantity_sold"] = DIRTY_NUMBERS[self.rng.integers(0, len(DIRTY_NUMBERS))]
        elif kind == 1:
            row["unit_price"] = DIRTY_NUMBERS[self.rng.integers(0, len(DIRTY_NUMBERS))]
        elif kind == 2:
            row["item_code"] = str(self.rng.integers(1, 999))
        else:
            # Padding only; survives cleaning
            row["item_code"] = f"  {row['item_code']} "
            row["sale_or_return"] = f" {row['sale_or_return']}  "
        return row

    def write_files(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        n_products: int = 50,
        n_days: int = 30,
        n_sales: int = 5000,
        start_date: date = date(2020, 7, 1),
    ) -> Dict[str, Path]:
        """
        Generate and write all four input files.

        Returns:
            Mapping of file kind to written path
        """
        staging = settings.staging
        output_dir = Path(output_dir or staging.data_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        dates = [start_date + timedelta(days=d) for d in range(n_days)]
        products = self.generate_products(n_products)
        prices = self.generate_prices(products, dates)
        loss_rates = self.generate_loss_rates(products)
        sales = self.generate_sales(products, prices, n_sales)

        paths = {
            "products": output_dir / staging.products_file,
            "sales": output_dir / staging.sales_file,
            "prices": output_dir / staging.prices_file,
            "loss_rates": output_dir / staging.loss_rates_file,
        }
        frames = {
            "products": products,
            "sales": sales,
            "prices": prices,
            "loss_rates": loss_rates,
        }
        for kind, path in paths.items():
            frames[kind].write_csv(path, separator=staging.delimiter)

        logger.info(
            "Synthetic dataset written",
            output_dir=str(output_dir),
            products=products.height,
            prices=prices.height,
            sales=sales.height,
        )
        return paths


def main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point"""
    import argparse

    from supermarket_dw.config.logging import configure_logging

    parser = argparse.ArgumentParser(description="Generate synthetic supermarket POS files")
    parser.add_argument("--output-dir", type=str, default=None, help="Where to write the files")
    parser.add_argument("--products", type=int, default=50)
    parser.add_argument("--days", type=int, default=30)
    parser.add_argument("--sales", type=int, default=5000)
    parser.add_argument("--start-date", type=date.fromisoformat, default=date(2020, 7, 1))
    parser.add_argument("--dirty-fraction", type=float, default=0.02)
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args(argv)

    configure_logging()

    generator = SupermarketDataGenerator(seed=args.seed, dirty_fraction=args.dirty_fraction)
    paths = generator.write_files(
        output_dir=args.output_dir,
        n_products=args.products,
        n_days=args.days,
        n_sales=args.sales,
        start_date=args.start_date,
    )

    for kind, path in paths.items():
        print(f"{kind}: {path} ({path.stat().st_size / 1024:.1f} KB)")
    return 0
