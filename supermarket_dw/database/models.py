"""
Database Models - Star Schema Design

This module defines the warehouse data model following a star schema design
pattern for analytical workloads over supermarket point-of-sale data:

Fact Tables:
- SaleTransaction: Append-only sale and return lines

Dimension Tables:
- Category: Product categories
- Product: Product catalog
- CalendarDay: Calendar attributes for every date seen in sales or prices
- HourOfDay: Static 24-row hour lookup
- PriceRecord: Wholesale price history per product and date
- LossRate: Spoilage/loss percentage per product

Referential rules are declared on the tables so the store rejects violations
even when a caller bypasses the loaders.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import List

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# ENUMERATIONS
# =============================================================================

class DayPeriod(str, Enum):
    """Part of the day an hour falls into"""
    DAWN = "Dawn"
    MORNING = "Morning"
    AFTERNOON = "Afternoon"
    NIGHT = "Night"


# =============================================================================
# DIMENSION TABLES
# =============================================================================

class Category(Base):
    """
    Category Dimension Table

    One row per distinct category code observed in the product catalog.
    """
    __tablename__ = "dim_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    products: Mapped[List["Product"]] = relationship(back_populates="category", passive_deletes="all")

    __table_args__ = (
        UniqueConstraint("code", name="uq_category_code"),
        CheckConstraint(
            "substr(code, 1, 1) BETWEEN '0' AND '9'",
            name="ck_category_code_format",
        ),
    )


class Product(Base):
    """
    Product Dimension Table

    One row per item code. Deleting a category that still has products is
    refused by the store.
    """
    __tablename__ = "dim_products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    item_code: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("dim_categories.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())

    category: Mapped["Category"] = relationship(back_populates="products")
    prices: Mapped[List["PriceRecord"]] = relationship(back_populates="product", passive_deletes=True)
    loss_rate: Mapped["LossRate"] = relationship(back_populates="product", passive_deletes=True)
    sales: Mapped[List["SaleTransaction"]] = relationship(back_populates="product", passive_deletes="all")

    __table_args__ = (
        UniqueConstraint("item_code", name="uq_product_item_code"),
        CheckConstraint("item_code > 0", name="ck_product_item_code_positive"),
        Index("ix_dim_products_category", "category_id"),
    )


class CalendarDay(Base):
    """
    Calendar Dimension Table

    Every attribute is a function of ``date``; weekday numbering follows the
    convention configured for the pipeline (1 = first day of the week).
    """
    __tablename__ = "dim_calendar"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    day: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    month: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    year: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    quarter: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    weekday: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    day_name: Mapped[str] = mapped_column(String(20), nullable=False)
    month_name: Mapped[str] = mapped_column(String(20), nullable=False)
    is_weekend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("date", name="uq_calendar_date"),
        CheckConstraint("day BETWEEN 1 AND 31", name="ck_calendar_day"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_calendar_month"),
        CheckConstraint("quarter BETWEEN 1 AND 4", name="ck_calendar_quarter"),
        CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_calendar_weekday"),
        CheckConstraint("year >= 2020 AND year <= 2100", name="ck_calendar_year"),
        Index("ix_dim_calendar_date", "date"),
    )


class HourOfDay(Base):
    """
    Hour Dimension Table

    Static lookup; the hour itself is the key.
    """
    __tablename__ = "dim_hours"

    hour: Mapped[int] = mapped_column(SmallInteger, primary_key=True, autoincrement=False)
    period: Mapped[str] = mapped_column(String(20), nullable=False)

    __table_args__ = (
        CheckConstraint("hour BETWEEN 0 AND 23", name="ck_hour_range"),
        CheckConstraint(
            "period IN ('Dawn', 'Morning', 'Afternoon', 'Night')",
            name="ck_hour_period",
        ),
    )


class PriceRecord(Base):
    """
    Wholesale Price Dimension Table

    One price per product and day; removed together with its product or day.
    """
    __tablename__ = "dim_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("dim_products.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    date_id: Mapped[int] = mapped_column(
        ForeignKey("dim_calendar.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    wholesale_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    product: Mapped["Product"] = relationship(back_populates="prices")

    __table_args__ = (
        UniqueConstraint("product_id", "date_id", name="uq_price_product_date"),
        CheckConstraint("wholesale_price > 0", name="ck_price_wholesale_positive"),
        Index("ix_dim_prices_product_date", "product_id", "date_id"),
    )


class LossRate(Base):
    """
    Loss Rate Dimension Table

    Percentage of stock lost to spoilage, one rate per product.
    """
    __tablename__ = "dim_loss_rates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("dim_products.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
    )
    loss_rate: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    product: Mapped["Product"] = relationship(back_populates="loss_rate")

    __table_args__ = (
        UniqueConstraint("product_id", name="uq_loss_rate_product"),
        CheckConstraint("loss_rate BETWEEN 0 AND 100", name="ck_loss_rate_range"),
    )


# =============================================================================
# FACT TABLES
# =============================================================================

class SaleTransaction(Base):
    """
    Sales Fact Table

    Grain: one line of the point-of-sale log. Rows are never edited; a
    correction is a new row with ``is_return`` set. Referenced dimension rows
    cannot be deleted while facts point at them.
    """
    __tablename__ = "fact_sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date_id: Mapped[int] = mapped_column(
        ForeignKey("dim_calendar.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )
    hour_id: Mapped[int] = mapped_column(
        ForeignKey("dim_hours.hour", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey("dim_products.id", ondelete="RESTRICT", onupdate="CASCADE"),
        nullable=False,
    )

    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 3), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    has_discount: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_return: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, server_default=func.now())

    product: Mapped["Product"] = relationship(back_populates="sales")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sale_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_sale_unit_price_positive"),
        CheckConstraint("total_amount > 0", name="ck_sale_total_positive"),
        Index("ix_fact_sales_date_product", "date_id", "product_id"),
        Index("ix_fact_sales_hour", "hour_id"),
    )


# Every entity in load order, used by audits and schema management
WAREHOUSE_MODELS = (
    Category,
    Product,
    CalendarDay,
    HourOfDay,
    PriceRecord,
    LossRate,
    SaleTransaction,
)
