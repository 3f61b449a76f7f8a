# =============================================================================
# Errors
# =============================================================================
# Exception hierarchy raised by rule configuration and lookup.
# =============================================================================

"""Errors raised by the record optimizer."""

__all__ = [
    "RecordOptimizerError",
    "RuleConfigurationError",
    "RuleNotFoundError",
    "AttributeTypeError",
]


class RecordOptimizerError(Exception):
    """Base error for this package."""


class RuleConfigurationError(RecordOptimizerError, ValueError):
    """Raised when a rule builder receives invalid input."""


class RuleNotFoundError(RecordOptimizerError, LookupError):
    """Raised when a rule is requested for a field that has none."""

    def __init__(self, field: str):
        super().__init__(f"No rule registered for field '{field}'")
        self.field = field


class AttributeTypeError(RecordOptimizerError, TypeError):
    """Raised when a list operation targets a non-list attribute."""
