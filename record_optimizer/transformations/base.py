# =============================================================================
# Base Classes for Field Rules
# =============================================================================
# Abstract base class and tag vocabulary for per-field rules.
# =============================================================================

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict

from ..models import Result

__all__ = ["RuleTag", "FieldRule"]


class RuleTag(str, Enum):
    """Tags of the rules that can be attached to a field."""

    JSON_ENCODE = "json_encode"
    JSON_DECODE = "json_decode"
    BOOL = "bool"
    ARRAY = "array"
    OBJECT = "object"
    INTEGER = "integer"
    STRING = "string"
    DOUBLE = "double"
    FLOAT = "float"
    SLUG = "slug"
    LIST = "list"
    DATE = "date"
    STRIP_TAGS = "strip_tags"
    REPLACE_VALUE = "replace_value"
    REPLACE_VALUE_BY_NEW = "replace_value_by_new"
    REPLACE_TEXT = "replace_text"
    RENAME = "rename"


MODIFY_TAG_PREFIX = "modify_"


class FieldRule(BaseModel, ABC):
    """
    Base class for all field rules.

    A rule carries its own parameters and turns one field value into a
    Result. Subclasses implement ``transform``; rules that need the field
    name or change the output key override ``apply`` instead.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    TAG: ClassVar[str] = ""

    @property
    def tag(self) -> str:
        return self.TAG

    @abstractmethod
    def transform(self, value: Any) -> Any:
        """
        Transform a single field value.

        Args:
            value: Current field value

        Returns:
            New field value (the input itself when the rule does not apply)
        """
        pass

    def apply(self, key: str, value: Any) -> Result:
        """
        Apply this rule to one field of one record.

        Args:
            key: Field name
            value: Current field value

        Returns:
            Result carrying the output key and value
        """
        return Result(key=key, value=self.transform(value))
