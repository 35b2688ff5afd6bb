"""
Data Quality Module
"""
from .validators import DataValidator, ValidationResult, validate_batch
from .consistency import ConsistencyReport, audit_warehouse

__all__ = [
    "DataValidator",
    "ValidationResult",
    "validate_batch",
    "ConsistencyReport",
    "audit_warehouse",
]
