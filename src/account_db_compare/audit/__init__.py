"""
Logging module for the account comparison tool.
"""

from .logger import CompareLogger

__all__ = ["CompareLogger"]
