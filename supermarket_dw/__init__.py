"""
Supermarket Sales Warehouse

Staging, validation and star-schema loading of point-of-sale data, plus
margin metrics over the loaded warehouse.
"""

__version__ = "1.0.0"
