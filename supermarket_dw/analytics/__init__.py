"""
Warehouse Metrics Module
"""
from .margins import (
    compute_gross_margin,
    compute_loss_adjusted_margin,
    gross_margin,
    loss_adjusted_margin,
)

__all__ = [
    "compute_gross_margin",
    "compute_loss_adjusted_margin",
    "gross_margin",
    "loss_adjusted_margin",
]
