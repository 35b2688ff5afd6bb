#!/usr/bin/env python
"""
Supermarket Sales Warehouse Setup
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="supermarket-dw",
    version="1.0.0",
    description="Star-schema warehouse loader and margin metrics for supermarket point-of-sale data",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["supermarket_dw", "supermarket_dw.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Framework :: FastAPI",
        "Topic :: Database",
        "Topic :: Scientific/Engineering :: Information Analysis",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.25.0",
            "ruff>=0.1.0",
            "mypy>=1.5.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "supermarket-dw-etl=supermarket_dw.transformation.transformers:main",
            "supermarket-dw-generate=supermarket_dw.data.generators:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "data-warehouse",
        "star-schema",
        "etl",
        "retail",
        "postgresql",
        "sqlalchemy",
    ],
)
