#!/usr/bin/env python
"""Minimal setup.py for svyexp."""

from setuptools import setup, find_packages

# Read version from the package (simple parsing)
import re

with open("svyexp/__init__.py", "r") as f:
    content = f.read()
    version_match = re.search(r'^__version__ = "(.+)"', content, re.MULTILINE)
    version = version_match.group(1) if version_match else "0.1.0"

setup(
    name="svyexp",
    version=version,
    description="Survey-weighted Tweedie GLMs for health expenditure analysis",
    packages=find_packages(include=["svyexp", "svyexp.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.26",
        "pandas>=2.2",
        "scipy>=1.11.0",
        "statsmodels>=0.14",
        "patsy>=0.5.6",
        "pydantic>=2.0",
        "matplotlib>=3.8",
        "seaborn>=0.13",
        "rich>=13.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
