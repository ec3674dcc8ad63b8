"""
Configuration module for the account comparison tool.
"""

from .loader import ConfigLoader
from .models import (
    CompareSystemConfig,
    ConcurrencyConfig,
    LoggingConfig,
    NodeRunResult,
    ReportConfig,
    RetryConfig,
    RunSummary,
    StoreConfig,
)

__all__ = [
    "ConfigLoader",
    "CompareSystemConfig",
    "ConcurrencyConfig",
    "LoggingConfig",
    "NodeRunResult",
    "ReportConfig",
    "RetryConfig",
    "RunSummary",
    "StoreConfig",
]
