#!/usr/bin/env python3
"""
Setup script for the tiered-sheets package
"""

from setuptools import setup, find_packages

setup(
    name="tiered-sheets",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        # 🌐 HTTP
        "httpx>=0.25.2",

        # 📋 Data Validation & Settings
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-dotenv>=1.0.0",

        # 🗄️ Caching
        "redis[hiredis]>=5.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.21",
        ],
    },
    package_data={
        "tiered_sheets": ["py.typed"],
    },
)
