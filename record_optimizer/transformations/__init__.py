# =============================================================================
# Transformations Library
# =============================================================================
# Rule-driven record transformation: rule variants, registry and executor.
# =============================================================================

"""
Transformations library for the record optimizer.

This library provides:
- FieldRule: Base class for all field rules
- RuleTag: Rule tag vocabulary
- Field rules: coercions, JSON, slug, list, date, strip tags, replacements,
  modify and rename
- RuleSet: Field-to-rule registry with chainable builders
- Optimizer: Executor applying a RuleSet to record sequences
"""

from .base import FieldRule, RuleTag
from .rules import (
    PassThroughRule,
    JsonDecodeRule,
    JsonEncodeRule,
    IntegerRule,
    DoubleRule,
    StringRule,
    BoolRule,
    ArrayRule,
    ObjectRule,
    SlugRule,
    ListRule,
    DateRule,
    StripTagsRule,
    SetValueRule,
    ReplaceValueRule,
    ReplaceTextRule,
    ModifyRule,
    RenameRule,
)
from .registry import DerivedKey, RecordSteps, RuleSet
from .executor import Optimizer, optimize, sort_record

__all__ = [
    "FieldRule",
    "RuleTag",
    "PassThroughRule",
    "JsonDecodeRule",
    "JsonEncodeRule",
    "IntegerRule",
    "DoubleRule",
    "StringRule",
    "BoolRule",
    "ArrayRule",
    "ObjectRule",
    "SlugRule",
    "ListRule",
    "DateRule",
    "StripTagsRule",
    "SetValueRule",
    "ReplaceValueRule",
    "ReplaceTextRule",
    "ModifyRule",
    "RenameRule",
    "DerivedKey",
    "RecordSteps",
    "RuleSet",
    "Optimizer",
    "optimize",
    "sort_record",
]
