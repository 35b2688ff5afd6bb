"""
Unit Tests - File Staging
"""
import polars as pl
import pytest
from pydantic import ValidationError

from supermarket_dw.config import PipelineSettings, StagingSettings
from supermarket_dw.ingestion.staging import (
    SALES_COLUMNS,
    StagingLoader,
)


def write(path, text: str):
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def raw_dir(tmp_path):
    write(
        tmp_path / "products.csv",
        "Item Code,Item Name,Category Code,Category Name\n"
        "101, apple ,1,Fruit\n"
        "102,WUHU GREEN PEPPER,1,Fruit\n",
    )
    write(
        tmp_path / "sales.csv",
        "Date,Time,Item Code,Quantity Sold (kilo),Unit Selling Price (RMB/kg),Sale or Return,Discount (Yes/No)\n"
        "2023-06-02,10:15:00.123,101,2,3.00,sale,No\n"
        "2023-06-02,11:00:00,102,,NULL,return,Yes\n",
    )
    write(
        tmp_path / "wholesale_prices.csv",
        "Date,Item Code,Wholesale Price (RMB/kg)\n"
        "2023-06-02,101,2.00\n",
    )
    write(
        tmp_path / "loss_rates.csv",
        "Item Code,Item Name,Loss Rate (%)\n"
        "101,apple,20\n",
    )
    return tmp_path


class TestStagingLoader:
    """Tests for StagingLoader"""

    def test_columns_are_taken_by_position(self, raw_dir):
        staged = StagingLoader(config=StagingSettings()).stage(raw_dir)

        assert staged.sales.columns == SALES_COLUMNS
        assert staged.sales["quantity_sold"].to_list() == ["2", None]
        assert staged.sales["sale_time"].to_list()[0] == "10:15:00.123"

    def test_everything_stays_text(self, raw_dir):
        staged = StagingLoader(config=StagingSettings()).stage(raw_dir)

        for frame in (staged.products, staged.sales, staged.prices, staged.loss_rates):
            assert all(dtype == pl.Utf8 for dtype in frame.dtypes)

    def test_cleaning_is_applied(self, raw_dir):
        staged = StagingLoader(config=StagingSettings(), normalize_names=True).stage(raw_dir)

        assert staged.products["item_name"].to_list() == ["apple", "Wuhu green pepper"]
        assert staged.sales["unit_price"].to_list() == ["3.00", None]
        assert staged.row_counts == {"products": 2, "sales": 2, "prices": 1, "loss_rates": 1}

    def test_missing_trailing_columns_are_null(self, tmp_path):
        path = write(tmp_path / "short.csv", "a,b\n1,2\n")

        df = StagingLoader(config=StagingSettings()).read_file(path, ["x", "y", "z"])

        assert df.columns == ["x", "y", "z"]
        assert df["z"].to_list() == [None]

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            StagingLoader(config=StagingSettings()).stage(tmp_path)

    def test_custom_delimiter(self, tmp_path):
        path = write(tmp_path / "semi.csv", "a;b\n1;2\n")

        df = StagingLoader(config=StagingSettings(delimiter=";")).read_file(path, ["x", "y"])

        assert df.rows() == [("1", "2")]


class TestPipelineSettings:
    """Tests for pipeline configuration"""

    def test_defaults(self):
        config = PipelineSettings()

        assert config.return_token == "return"
        assert config.discount_token == "Yes"
        assert config.week_starts_on == "sunday"

    def test_week_start_is_validated(self):
        assert PipelineSettings(week_starts_on="Monday").week_starts_on == "monday"

        with pytest.raises(ValidationError):
            PipelineSettings(week_starts_on="wednesday")
