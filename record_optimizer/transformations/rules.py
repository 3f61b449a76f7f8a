# =============================================================================
# Field Rules
# =============================================================================
# Concrete field rule implementations, one class per rule tag.
# =============================================================================

import html
import logging
import re
from collections.abc import Mapping
from datetime import date
from types import SimpleNamespace
from typing import Any, Callable, ClassVar, List, Optional, Union

import bleach
from pydantic import Field, field_validator

from ..models import Result
from ..utils import (
    decode_json,
    encode_json,
    format_date,
    is_numeric,
    parse_allowed_tags,
    parse_date,
    text_to_slug,
    to_float,
    to_int,
    to_text,
)
from .base import MODIFY_TAG_PREFIX, FieldRule, RuleTag

__all__ = [
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
]

logger = logging.getLogger(__name__)

# Strings that read as false in addition to the usual falsy values.
_FALSE_STRINGS = frozenset({"", "0"})


class PassThroughRule(FieldRule):
    """Rule for an unrecognized tag: the value is left unchanged."""

    tag_name: str = Field(..., description="Unrecognized tag as registered")

    @property
    def tag(self) -> str:
        return self.tag_name

    def transform(self, value: Any) -> Any:
        return value


# =============================================================================
# JSON
# =============================================================================

class JsonDecodeRule(FieldRule):
    """Decode a JSON string; anything that is not valid JSON passes through."""

    TAG: ClassVar[str] = RuleTag.JSON_DECODE.value

    def transform(self, value: Any) -> Any:
        ok, decoded = decode_json(value)
        return decoded if ok else value


class JsonEncodeRule(FieldRule):
    """
    Serialize the value to compact JSON.

    Values that cannot be serialized are left unchanged.
    """

    TAG: ClassVar[str] = RuleTag.JSON_ENCODE.value

    ensure_ascii: bool = Field(True, description="Escape non-ASCII characters")

    def transform(self, value: Any) -> Any:
        try:
            return encode_json(value, ensure_ascii=self.ensure_ascii)
        except (TypeError, ValueError) as e:
            logger.debug(f"Leaving value unchanged, JSON encoding failed: {e}")
            return value


# =============================================================================
# Type Coercions
# =============================================================================

class IntegerRule(FieldRule):
    """Coerce numeric-looking values to int (truncating); others pass through."""

    TAG: ClassVar[str] = RuleTag.INTEGER.value

    def transform(self, value: Any) -> Any:
        if not is_numeric(value):
            return value
        coerced = to_int(value)
        return value if coerced is None else coerced


class DoubleRule(FieldRule):
    """Coerce numeric-looking values to float; others pass through."""

    TAG: ClassVar[str] = RuleTag.DOUBLE.value

    def transform(self, value: Any) -> Any:
        if not is_numeric(value):
            return value
        return to_float(value)


class StringRule(FieldRule):
    TAG: ClassVar[str] = RuleTag.STRING.value

    def transform(self, value: Any) -> Any:
        return to_text(value)


class BoolRule(FieldRule):
    """
    Coerce to bool.

    Besides the usual falsy values, the strings "" and "0" are False, which
    is how flags usually arrive from database rows.
    """

    TAG: ClassVar[str] = RuleTag.BOOL.value

    def transform(self, value: Any) -> Any:
        if isinstance(value, str):
            return value not in _FALSE_STRINGS
        return bool(value)


class ArrayRule(FieldRule):
    """
    Coerce to a list or dict.

    None becomes an empty list, lists and mappings keep their shape, other
    sequences become lists and scalars are wrapped in a one-item list.
    """

    TAG: ClassVar[str] = RuleTag.ARRAY.value

    def transform(self, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return value
        if isinstance(value, (tuple, set, frozenset)):
            return list(value)
        if isinstance(value, Mapping):
            return dict(value)
        if isinstance(value, SimpleNamespace):
            return dict(vars(value))
        return [value]


class ObjectRule(FieldRule):
    """
    Coerce to an attribute-access object (SimpleNamespace).

    Mapping keys become attributes, list positions become "0", "1", ...
    and a scalar is stored under ``scalar``.
    """

    TAG: ClassVar[str] = RuleTag.OBJECT.value

    def transform(self, value: Any) -> Any:
        if isinstance(value, SimpleNamespace):
            return value
        if value is None:
            return SimpleNamespace()
        if isinstance(value, Mapping):
            return SimpleNamespace(**{str(k): v for k, v in value.items()})
        if isinstance(value, (list, tuple)):
            return SimpleNamespace(**{str(i): v for i, v in enumerate(value)})
        return SimpleNamespace(scalar=value)


# =============================================================================
# Text Rules
# =============================================================================

class SlugRule(FieldRule):
    """Turn a string into a lowercase slug; non-strings pass through."""

    TAG: ClassVar[str] = RuleTag.SLUG.value

    delimiter: str = Field("-", description="Replacement for whitespace runs")

    def transform(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        return text_to_slug(value, self.delimiter)


class ListRule(FieldRule):
    """
    Flatten a JSON-encoded array into a delimited string.

    Objects contribute their values; a decoded scalar is treated as a
    one-item list. Values that are not valid JSON pass through.
    """

    TAG: ClassVar[str] = RuleTag.LIST.value

    separator: str = Field(",", description="Separator placed between items")

    def transform(self, value: Any) -> Any:
        ok, decoded = decode_json(value)
        if not ok:
            return value
        if isinstance(decoded, dict):
            items = list(decoded.values())
        elif isinstance(decoded, list):
            items = decoded
        elif decoded is None:
            items = []
        else:
            items = [decoded]
        return self.separator.join(self._item_text(item) for item in items)

    @staticmethod
    def _item_text(item: Any) -> str:
        if isinstance(item, (list, dict)):
            return encode_json(item)
        return to_text(item)


class DateRule(FieldRule):
    """
    Reformat a date string.

    Strings are parsed with ``from_format`` and written with ``to_format``;
    date and datetime objects are formatted directly. Unparsable values and
    a missing ``to_format`` leave the value unchanged.
    """

    TAG: ClassVar[str] = RuleTag.DATE.value

    to_format: Optional[str] = Field(None, description="Output format")
    from_format: str = Field("Y-m-d H:i:s", description="Input format")

    def transform(self, value: Any) -> Any:
        if not self.to_format:
            return value
        if isinstance(value, date):
            return format_date(value, self.to_format)
        if not isinstance(value, str):
            return value

        parsed = parse_date(value, self.from_format)
        if parsed is None:
            logger.debug(f"Value {value!r} does not match date format {self.from_format!r}")
            return value
        return format_date(parsed, self.to_format)


def _keep_attribute(tag: str, name: str, value: str) -> bool:
    return True


# A complete tag in cleaned markup; quoted attribute values may hold ">".
_MARKUP_PATTERN = re.compile(r"""<(?:[^>"']|"[^"]*"|'[^']*')*>""")


def _unescape_text(markup: str) -> str:
    """Unescape the text between tags, leaving the tags themselves as serialized."""
    parts = []
    position = 0
    for match in _MARKUP_PATTERN.finditer(markup):
        parts.append(html.unescape(markup[position:match.start()]))
        parts.append(match.group(0))
        position = match.end()
    parts.append(html.unescape(markup[position:]))
    return "".join(parts)


class StripTagsRule(FieldRule):
    """
    Strip markup tags from strings, keeping the allowed tags.

    Allowed tags keep all of their attributes. Text outside tags comes back
    exactly as given: bare "&" and "<" are not escaped and existing entities
    are not decoded.
    """

    TAG: ClassVar[str] = RuleTag.STRIP_TAGS.value

    allowed_tags: List[str] = Field(default_factory=list, description="Tag names to keep")

    @field_validator("allowed_tags", mode="before")
    @classmethod
    def normalize_allowed_tags(cls, v: Any) -> List[str]:
        """Accept ``"<p><a>"`` strings as well as lists of names."""
        try:
            return parse_allowed_tags(v)
        except TypeError as e:
            raise ValueError(str(e)) from e

    def transform(self, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        # Escaping "&" first lets the final unescape restore entities verbatim.
        cleaned = bleach.clean(
            value.replace("&", "&amp;"),
            tags=set(self.allowed_tags),
            attributes=_keep_attribute,
            strip=True,
            strip_comments=True,
        )
        return _unescape_text(cleaned)


# =============================================================================
# Replacement Rules
# =============================================================================

class SetValueRule(FieldRule):
    """Overwrite the field with a constant."""

    TAG: ClassVar[str] = RuleTag.REPLACE_VALUE.value

    new_value: Any = Field(None, description="Constant written to the field")

    def transform(self, value: Any) -> Any:
        return self.new_value


class ReplaceValueRule(FieldRule):
    """
    Replace the value only when it strictly equals ``default``.

    Strict means same type and equal: 0 does not match 0.0 or False.
    """

    TAG: ClassVar[str] = RuleTag.REPLACE_VALUE_BY_NEW.value

    default: Any = Field(None, description="Value to look for")
    new: Any = Field(None, description="Replacement value")

    def transform(self, value: Any) -> Any:
        if type(value) is type(self.default) and value == self.default:
            return self.new
        return value


class ReplaceTextRule(FieldRule):
    """
    Substring replacement inside strings.

    ``target`` and ``replacement`` may be parallel lists, in which case each
    target is replaced in turn; a single replacement string is used for every
    target, and missing replacements are empty. Lists of strings are
    processed item by item. Other values pass through.
    """

    TAG: ClassVar[str] = RuleTag.REPLACE_TEXT.value

    target: Union[str, List[str], None] = Field(None, description="Text to find")
    replacement: Union[str, List[str], None] = Field(None, description="Replacement text")

    def _pairs(self) -> List[tuple]:
        if self.target is None:
            return []
        if isinstance(self.target, str):
            return [(self.target, to_text(self.replacement))]
        if isinstance(self.replacement, list):
            replacements = self.replacement
            return [
                (target, replacements[i] if i < len(replacements) else "")
                for i, target in enumerate(self.target)
            ]
        return [(target, to_text(self.replacement)) for target in self.target]

    def _replace(self, text: str) -> str:
        for target, replacement in self._pairs():
            if target:
                text = text.replace(target, replacement)
        return text

    def transform(self, value: Any) -> Any:
        if isinstance(value, str):
            return self._replace(value)
        if isinstance(value, list):
            return [self._replace(item) if isinstance(item, str) else item for item in value]
        return value


# =============================================================================
# Key-Aware Rules
# =============================================================================

class ModifyRule(FieldRule):
    """
    Replace the value with ``callback(field, value)``.

    The tag embeds the field name so every field carries its own callback.
    """

    field_name: str = Field(..., description="Field the callback belongs to")
    callback: Callable[[str, Any], Any] = Field(..., description="(field, value) -> new value")

    @property
    def tag(self) -> str:
        return f"{MODIFY_TAG_PREFIX}{self.field_name}"

    def transform(self, value: Any) -> Any:
        return self.callback(self.field_name, value)

    def apply(self, key: str, value: Any) -> Result:
        return Result(key=key, value=self.callback(key, value))


class RenameRule(FieldRule):
    """
    Move the value to ``new_name`` and drop the original field.

    Kept for rule sets that rename through the per-field dispatch; renames
    registered with ``RuleSet.rename_key`` are applied after all field rules.
    Without a ``new_name`` the field is left as is.
    """

    TAG: ClassVar[str] = RuleTag.RENAME.value

    new_name: Optional[str] = Field(None, description="Target field name")

    def transform(self, value: Any) -> Any:
        return value

    def apply(self, key: str, value: Any) -> Result:
        if not self.new_name or self.new_name == key:
            return Result(key=key, value=value)
        return Result(key=self.new_name, value=value, removed_key=key)
