"""
Data Ingestion Module
"""
from .staging import StagedData, StagingLoader
from .batch_loader import LoadResult, LoadStatus, WarehouseLoader

__all__ = [
    "StagedData",
    "StagingLoader",
    "LoadResult",
    "LoadStatus",
    "WarehouseLoader",
]
