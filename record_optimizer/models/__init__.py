# =============================================================================
# Data Models Library
# =============================================================================
# Pydantic models for rule results and optimizer configuration.
# =============================================================================

"""
Data models for the record optimizer.

This library provides:
- Result: Outcome of one rule applied to one field
- OptimizerSettings: Environment-driven rule defaults
"""

from .result import Result
from .config import OptimizerSettings, get_settings

__all__ = [
    "Result",
    "OptimizerSettings",
    "get_settings",
]
