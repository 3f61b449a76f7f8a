# =============================================================================
# Rule Registry
# =============================================================================
# Field-to-rule registry with chainable builders, plus the record-level
# operations (rename, add, derive, remove, sort) applied by the executor.
# =============================================================================

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Union

from pydantic import ValidationError

from ..attributes import AttributeStore
from ..errors import RuleConfigurationError, RuleNotFoundError
from ..models import OptimizerSettings, get_settings
from .base import MODIFY_TAG_PREFIX, FieldRule, RuleTag
from .rules import (
    ArrayRule,
    BoolRule,
    DateRule,
    DoubleRule,
    IntegerRule,
    JsonDecodeRule,
    JsonEncodeRule,
    ListRule,
    ModifyRule,
    ObjectRule,
    PassThroughRule,
    RenameRule,
    ReplaceTextRule,
    ReplaceValueRule,
    SetValueRule,
    SlugRule,
    StringRule,
    StripTagsRule,
)

__all__ = ["RuleSet", "DerivedKey", "RecordSteps"]

logger = logging.getLogger(__name__)

DeriveCallback = Callable[[Dict[str, Any]], Any]
ModifyCallback = Callable[[str, Any], Any]

# Attribute key prefixes of the record-level operations.
_RENAME_PREFIX = "rename_"
_NEW_KEY_NAME_PREFIX = "new_key_name_"
_DERIVED_PREFIX = "add_keys_by_using_item_"
_DERIVED_CALLBACK_PREFIX = "add_keys_by_using_item_callback_"

# Tags whose rules take no parameters.
_SIMPLE_RULES = {
    RuleTag.JSON_ENCODE.value: JsonEncodeRule,
    RuleTag.JSON_DECODE.value: JsonDecodeRule,
    RuleTag.BOOL.value: BoolRule,
    RuleTag.ARRAY.value: ArrayRule,
    RuleTag.OBJECT.value: ObjectRule,
    RuleTag.INTEGER.value: IntegerRule,
    RuleTag.STRING.value: StringRule,
    RuleTag.DOUBLE.value: DoubleRule,
    RuleTag.FLOAT.value: DoubleRule,
}


class DerivedKey(NamedTuple):
    """A field computed from the whole record."""

    index: int
    target: str
    callback: DeriveCallback


class RecordSteps(NamedTuple):
    """Record-level operations of a RuleSet, in execution order."""

    renames: Dict[str, str]
    added_keys: Dict[str, Any]
    derived_keys: List[DerivedKey]
    removed_keys: List[str]
    sort_keys: Optional[List[str]]


class RuleSet(AttributeStore):
    """
    Declarative rule configuration for the optimizer.

    Each field holds at most one rule; the last registration wins. Builders
    return the rule set so calls can be chained::

        rules = RuleSet().string("name").integer("age").remove_keys(["city"])

    Every builder also records its parameters in the attribute store under
    the conventional keys (``slug``, ``from_format``, ``rename_<field>``,
    ...). Registering a bare tag with ``set_rule`` builds the rule from those
    attributes.
    """

    def __init__(self, settings: Optional[OptimizerSettings] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self._rules: Dict[str, FieldRule] = {}
        self._increment = 1

    # -------------------------------------------------------------------------
    # Rule accessors
    # -------------------------------------------------------------------------
    @property
    def increment(self) -> int:
        return self._increment

    def has_rule(self, field: str) -> bool:
        return field in self._rules

    def get_rules(self) -> Dict[str, str]:
        """Return the registered rule tag for every field."""
        return {field: rule.tag for field, rule in self._rules.items()}

    def get_rule(self, field: str) -> str:
        """
        Return the rule tag registered for ``field``.

        Raises:
            RuleNotFoundError: If no rule is registered; check ``has_rule`` first
        """
        return self.get_field_rule(field).tag

    def get_field_rule(self, field: str) -> FieldRule:
        try:
            return self._rules[field]
        except KeyError:
            raise RuleNotFoundError(field) from None

    def set_rule(self, field: str, rule: Union[str, FieldRule]) -> "RuleSet":
        """
        Register a rule for ``field``, replacing any previous one.

        Args:
            field: Field name
            rule: A FieldRule, or a tag string resolved against the stored
                  attributes (unknown tags register a pass-through rule)

        Returns:
            This rule set
        """
        if not isinstance(rule, FieldRule):
            rule = self.rule_from_tag(field, rule)
        self._rules[field] = rule
        return self

    def set_rules(self, rules: Mapping[str, Union[str, FieldRule]]) -> "RuleSet":
        """Replace every registered rule with ``rules``."""
        self._rules = {}
        for field, rule in rules.items():
            self.set_rule(field, rule)
        return self

    def rule_from_tag(self, field: str, tag: Union[str, RuleTag]) -> FieldRule:
        """
        Build the rule for ``tag`` from the stored attributes.

        Missing parameters fall back to the rule's defaults, so a rule
        configured only by tag degrades to pass-through for that parameter.

        Raises:
            RuleConfigurationError: If a stored attribute is not a valid
                                    parameter for the rule
        """
        tag = tag.value if isinstance(tag, RuleTag) else str(tag)
        try:
            return self._build_from_tag(field, tag)
        except ValidationError as e:
            raise RuleConfigurationError(
                f"Invalid attributes for rule '{tag}' on field '{field}': {e}"
            ) from e

    def _build_from_tag(self, field: str, tag: str) -> FieldRule:
        if tag in _SIMPLE_RULES:
            if tag == RuleTag.JSON_ENCODE.value:
                return JsonEncodeRule(ensure_ascii=self.settings.json_ensure_ascii)
            return _SIMPLE_RULES[tag]()
        if tag == RuleTag.SLUG.value:
            return SlugRule(delimiter=self.get("slug", self.settings.slug_delimiter))
        if tag == RuleTag.LIST.value:
            return ListRule(separator=self.settings.list_separator)
        if tag == RuleTag.DATE.value:
            return DateRule(
                to_format=self.get("to_format"),
                from_format=self.get("from_format", self.settings.date_from_format),
            )
        if tag == RuleTag.STRIP_TAGS.value:
            return StripTagsRule(allowed_tags=self.get("allowed_tags"))
        if tag == RuleTag.REPLACE_VALUE.value:
            return SetValueRule(new_value=self.get("replace_new_value"))
        if tag == RuleTag.REPLACE_VALUE_BY_NEW.value:
            return ReplaceValueRule(
                default=self.get("replace_value_default"),
                new=self.get("replace_value_new"),
            )
        if tag == RuleTag.REPLACE_TEXT.value:
            return ReplaceTextRule(
                target=self.get("replace_text_default"),
                replacement=self.get("replace_text_new"),
            )
        if tag == RuleTag.RENAME.value:
            return RenameRule(new_name=self.get(f"{_NEW_KEY_NAME_PREFIX}{field}"))
        if tag.startswith(MODIFY_TAG_PREFIX):
            owner = tag[len(MODIFY_TAG_PREFIX):]
            callback = self.get(f"callback_function_{owner}")
            if callable(callback):
                return ModifyRule(field_name=owner, callback=callback)

        logger.debug(f"Unrecognized rule tag '{tag}' for field '{field}', value passes through")
        return PassThroughRule(tag_name=tag)

    def _register(self, field: str, rule_type: type, **params: Any) -> "RuleSet":
        try:
            rule = rule_type(**params)
        except ValidationError as e:
            raise RuleConfigurationError(
                f"Invalid parameters for {rule_type.__name__} on field '{field}': {e}"
            ) from e
        return self.set_rule(field, rule)

    # -------------------------------------------------------------------------
    # Type coercions
    # -------------------------------------------------------------------------
    def string(self, field: str) -> "RuleSet":
        return self.set_rule(field, StringRule())

    def integer(self, field: str) -> "RuleSet":
        return self.set_rule(field, IntegerRule())

    def double(self, field: str) -> "RuleSet":
        return self.set_rule(field, DoubleRule())

    def bool(self, field: str) -> "RuleSet":
        return self.set_rule(field, BoolRule())

    def array(self, field: str) -> "RuleSet":
        return self.set_rule(field, ArrayRule())

    def object(self, field: str) -> "RuleSet":
        return self.set_rule(field, ObjectRule())

    def json_encode(self, field: str) -> "RuleSet":
        return self.set_rule(field, JsonEncodeRule(ensure_ascii=self.settings.json_ensure_ascii))

    def json_decode(self, field: str) -> "RuleSet":
        return self.set_rule(field, JsonDecodeRule())

    # -------------------------------------------------------------------------
    # Parameterized field rules
    # -------------------------------------------------------------------------
    def slug(self, field: str, delimiter: Optional[str] = None) -> "RuleSet":
        """Slugify ``field``; the delimiter defaults to ``settings.slug_delimiter``."""
        if delimiter is None:
            delimiter = self.settings.slug_delimiter
        self.set("slug", delimiter)
        return self._register(field, SlugRule, delimiter=delimiter)

    def list(self, field: str) -> "RuleSet":
        """Join the JSON array held in ``field`` into a delimited string."""
        return self._register(field, ListRule, separator=self.settings.list_separator)

    def date(self, field: str, to_format: str, from_format: Optional[str] = None) -> "RuleSet":
        """
        Reformat dates in ``field``.

        Args:
            field: Field name
            to_format: Output format (date tokens such as "d/m/Y", or strftime directives)
            from_format: Input format (default: ``settings.date_from_format``)
        """
        if from_format is None:
            from_format = self.settings.date_from_format
        self.set("from_format", from_format)
        self.set("to_format", to_format)
        return self._register(field, DateRule, to_format=to_format, from_format=from_format)

    def set_value(self, field: str, new_value: Any) -> "RuleSet":
        """Always overwrite ``field`` with ``new_value``."""
        self.set("replace_new_value", new_value)
        return self._register(field, SetValueRule, new_value=new_value)

    def replace_value(self, field: str, default: Any, new: Any) -> "RuleSet":
        """Replace ``field`` with ``new`` when it strictly equals ``default``."""
        self.set("replace_value_default", default)
        self.set("replace_value_new", new)
        return self._register(field, ReplaceValueRule, default=default, new=new)

    def replace_text(
        self,
        field: str,
        target: Union[str, List[str]],
        replacement: Union[str, List[str]],
    ) -> "RuleSet":
        """Replace occurrences of ``target`` with ``replacement`` inside ``field``."""
        self.set("replace_text_default", target)
        self.set("replace_text_new", replacement)
        return self._register(field, ReplaceTextRule, target=target, replacement=replacement)

    def strip_tags(
        self, field: str, allowed_tags: Union[str, Iterable[str], None] = None
    ) -> "RuleSet":
        """
        Strip markup from ``field``.

        Args:
            field: Field name
            allowed_tags: Tags to keep, as ``"<p><a>"`` or a list of names
        """
        self.set("allowed_tags", allowed_tags)
        return self._register(field, StripTagsRule, allowed_tags=allowed_tags)

    def modify(self, field: str, callback: ModifyCallback) -> "RuleSet":
        """
        Replace ``field`` with ``callback(field, value)``.

        Raises:
            RuleConfigurationError: If ``callback`` is not callable
        """
        if not callable(callback):
            raise RuleConfigurationError(f"modify callback for '{field}' must be callable")
        self.set(f"callback_function_{field}", callback)
        return self._register(field, ModifyRule, field_name=field, callback=callback)

    def rename(self, field: str, new_name: str) -> "RuleSet":
        """
        Rename ``field`` during the per-field rule pass.

        This replaces any other rule on ``field``. Prefer ``rename_key``,
        which runs after the field rules and so combines with them.
        """
        self.set(f"{_NEW_KEY_NAME_PREFIX}{field}", new_name)
        return self._register(field, RenameRule, new_name=new_name)

    # -------------------------------------------------------------------------
    # Record-level operations
    # -------------------------------------------------------------------------
    # These steps live only in the attribute store, so ``set``, ``merge`` and
    # ``forget`` configure them exactly like the builders do.

    @property
    def renames(self) -> Dict[str, str]:
        """``{field: new_name}`` read from ``rename_<field>`` and ``new_key_name_<field>``."""
        renames = {}
        for key, field in self.all().items():
            if not str(key).startswith(_RENAME_PREFIX) or not isinstance(field, str):
                continue
            new_name = self.get(f"{_NEW_KEY_NAME_PREFIX}{field}")
            if isinstance(new_name, str) and new_name:
                renames[field] = new_name
        return renames

    @property
    def added_keys(self) -> Dict[str, Any]:
        keys = self.get("add_keys")
        if keys is None:
            return {}
        if not isinstance(keys, Mapping):
            raise RuleConfigurationError(
                f"Attribute 'add_keys' must be a mapping, got {type(keys).__name__}"
            )
        return dict(keys)

    @property
    def derived_keys(self) -> List[DerivedKey]:
        """Derived fields stored at indexes ``1..increment``, in index order."""
        derived = []
        for index in range(1, self._increment + 1):
            target = self.get(f"{_DERIVED_PREFIX}{index}")
            if target is None:
                continue
            callback = self.get(f"{_DERIVED_CALLBACK_PREFIX}{index}")
            if not callable(callback):
                raise RuleConfigurationError(
                    f"Attribute '{_DERIVED_CALLBACK_PREFIX}{index}' for derived field "
                    f"'{target}' must be callable"
                )
            derived.append(DerivedKey(index, target, callback))
        return derived

    @property
    def removed_keys(self) -> List[str]:
        return self._field_list("remove_keys") or []

    @property
    def sort_keys(self) -> Optional[List[str]]:
        return self._field_list("sort")

    def _field_list(self, key: str) -> Optional[List[str]]:
        fields = self.get(key)
        if fields is None:
            return None
        if isinstance(fields, str):
            return [fields]
        if not isinstance(fields, (list, tuple)):
            raise RuleConfigurationError(
                f"Attribute '{key}' must be a list of field names, got {type(fields).__name__}"
            )
        return list(fields)

    def record_steps(self) -> RecordSteps:
        """Snapshot of every record-level operation, read once per run."""
        return RecordSteps(
            renames=self.renames,
            added_keys=self.added_keys,
            derived_keys=self.derived_keys,
            removed_keys=self.removed_keys,
            sort_keys=self.sort_keys,
        )

    def rename_key(self, field: str, new_name: str) -> "RuleSet":
        """
        Rename ``field`` to ``new_name`` after the field rules have run.

        Does not register a rule, so ``field`` can still carry one.
        """
        self.set(f"{_RENAME_PREFIX}{field}", field)
        self.set(f"{_NEW_KEY_NAME_PREFIX}{field}", new_name)
        return self

    def remove_keys(self, fields: Iterable[str]) -> "RuleSet":
        """Delete ``fields`` from every record once all other steps but sorting ran."""
        self.set("remove_keys", list(fields))
        return self

    def add_keys(self, keys: Mapping[str, Any]) -> "RuleSet":
        """
        Add fixed key/value pairs to every record, overwriting existing fields.

        Raises:
            RuleConfigurationError: If ``keys`` is not a non-empty mapping
                                    with string keys
        """
        if (
            not isinstance(keys, Mapping)
            or not keys
            or not all(isinstance(key, str) for key in keys)
        ):
            raise RuleConfigurationError("keys must be a non-empty mapping of field names to values")
        self.set("add_keys", dict(keys))
        return self

    def add_key_use_item(self, field: str, callback: DeriveCallback) -> "RuleSet":
        """
        Add ``field`` computed as ``callback(record)`` for every record.

        Several derived fields can be registered; they run in registration
        order and each sees the fields derived before it.

        Raises:
            RuleConfigurationError: If ``callback`` is not callable
        """
        if not callable(callback):
            raise RuleConfigurationError(f"callback for derived field '{field}' must be callable")
        self._increment += 1
        self.set(f"{_DERIVED_PREFIX}{self._increment}", field)
        self.set(f"{_DERIVED_CALLBACK_PREFIX}{self._increment}", callback)
        return self

    def sort_by_keys(self, fields: Iterable[str]) -> "RuleSet":
        """Order output fields as ``fields``; unlisted fields follow in original order."""
        self.set("sort", list(fields))
        return self
