"""
Supermarket Dataset Generator

Writes the four raw input files (products, sales, wholesale prices, loss
rates) for local runs of the warehouse load.

Usage:
    python scripts/generate_dataset.py --output-dir data/raw --sales 20000
"""

import sys

from supermarket_dw.data.generators import main

if __name__ == "__main__":
    sys.exit(main())
