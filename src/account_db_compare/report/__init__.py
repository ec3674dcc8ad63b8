"""
Report module for the account comparison tool.
"""

from .reporter import CSV_COLUMNS, Reporter, write_csv

__all__ = ["CSV_COLUMNS", "Reporter", "write_csv"]
