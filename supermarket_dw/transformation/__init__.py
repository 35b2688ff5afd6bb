"""
Data Transformation Module
"""
from .cleaners import DataCleaner, clean_dataframe
from .dimensions import BuildResult, calendar_attributes, hour_period
from .facts import build_sale_transactions

__all__ = [
    "DataCleaner",
    "clean_dataframe",
    "BuildResult",
    "calendar_attributes",
    "hour_period",
    "build_sale_transactions",
]
