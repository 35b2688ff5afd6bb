"""
Data Generation Module
"""
from .generators import SupermarketDataGenerator

__all__ = ["SupermarketDataGenerator"]
