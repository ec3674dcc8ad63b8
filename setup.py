"""
setup.py configuration script for account_db_compare project.

A reconciliation tool comparing the archiver's account snapshot against
per-node account databases of a distributed ledger.
"""

import datetime
import re

from setuptools import find_packages, setup

with open("src/account_db_compare/__init__.py", encoding="utf-8") as handle:
    version = re.search(r'^__version__ = "([^"]+)"', handle.read(), re.M).group(1)

local_version = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d.%H%M%S")

setup(
    name="account_db_compare",
    version=version + "+" + local_version,
    description="Compare accounts data between archiver and node databases",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(where="./src"),
    package_dir={"": "src"},
    entry_points={
        "console_scripts": [
            "account-db-compare=account_db_compare.main:main",
        ],
    },
    install_requires=[
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "tenacity>=8.0.0",
        "structlog>=22.0.0",
        "rich>=13.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "coverage>=7.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-mock>=3.10.0",
            "coverage>=7.0.0",
        ],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
