# =============================================================================
# Record Optimizer
# =============================================================================
# Rule-driven transformation of record sequences.
# See individual sub-packages for detailed documentation.
# =============================================================================

"""
Rule-driven record transformation.

Sub-packages:
- models: Pydantic result and settings models
- transformations: Field rules, RuleSet registry and the Optimizer executor

Example:
    >>> from record_optimizer import RuleSet, optimize
    >>> rules = RuleSet().string("name").integer("age")
    >>> optimize([{"name": "John Doe", "age": "25"}], rules)
    [{'name': 'John Doe', 'age': 25}]
"""

__version__ = "0.1.0"

from .attributes import AttributeStore
from .collection import RecordCollection
from .errors import (
    AttributeTypeError,
    RecordOptimizerError,
    RuleConfigurationError,
    RuleNotFoundError,
)
from .models import OptimizerSettings, Result, get_settings
from .transformations import FieldRule, Optimizer, RuleSet, RuleTag, optimize
from .utils import is_json, is_sequence_of_records, text_to_slug

__all__ = [
    "AttributeStore",
    "RecordCollection",
    "AttributeTypeError",
    "RecordOptimizerError",
    "RuleConfigurationError",
    "RuleNotFoundError",
    "OptimizerSettings",
    "Result",
    "get_settings",
    "FieldRule",
    "Optimizer",
    "RuleSet",
    "RuleTag",
    "optimize",
    "is_json",
    "is_sequence_of_records",
    "text_to_slug",
]
