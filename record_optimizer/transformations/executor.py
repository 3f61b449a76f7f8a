# =============================================================================
# Optimizer
# =============================================================================
# Executor that applies a RuleSet to every record of a sequence.
# =============================================================================

"""
Rule executor.

Per record, steps run in this order:
1. field rules (one per field, applied to the original field values)
2. renames registered with ``rename_key``
3. fixed keys from ``add_keys``
4. derived keys from ``add_key_use_item``, in registration order
5. removals from ``remove_keys``
6. reordering from ``sort_by_keys``
"""

import logging
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..models import OptimizerSettings, Result, get_settings
from ..utils import is_sequence_of_records
from .base import FieldRule, RuleTag
from .registry import RecordSteps, RuleSet

__all__ = ["Optimizer", "optimize", "sort_record"]

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
RuleSource = Union[RuleSet, Callable[[RuleSet], Any]]


class Optimizer:
    """
    Applies a RuleSet to record sequences.

    Stateless apart from its settings; the same optimizer and rule set can
    be reused across batches. Input records are never modified.
    """

    def __init__(self, settings: Optional[OptimizerSettings] = None):
        self.settings = settings or get_settings()

    def resolve_rules(self, rules: RuleSource) -> RuleSet:
        """
        Return the RuleSet to run.

        Args:
            rules: A RuleSet, or a callable that configures a fresh RuleSet

        Raises:
            TypeError: If ``rules`` is neither
        """
        if isinstance(rules, RuleSet):
            return rules
        if callable(rules):
            rule_set = RuleSet(settings=self.settings)
            rules(rule_set)
            return rule_set
        raise TypeError(f"rules must be a RuleSet or a callable, got {type(rules).__name__}")

    def apply_rule(
        self,
        rule: Union[FieldRule, str, RuleTag],
        key: str,
        value: Any,
        rule_set: Optional[RuleSet] = None,
    ) -> Result:
        """
        Apply one rule to one field value.

        Args:
            rule: A FieldRule, or a tag resolved against ``rule_set`` attributes
            key: Field name
            value: Current field value
            rule_set: Rule set used to resolve tag strings (default: empty)

        Returns:
            Result with the output key, value and the key to remove, if any
        """
        if not isinstance(rule, FieldRule):
            rule = (rule_set or RuleSet(settings=self.settings)).rule_from_tag(key, rule)
        return rule.apply(key, value)

    def optimize(
        self, records: Sequence[Mapping[str, Any]], rules: RuleSource
    ) -> List[Record]:
        """
        Transform every record according to ``rules``.

        Args:
            records: Sequence of mappings (list, tuple or RecordCollection)
            rules: A RuleSet, or a callable that configures a fresh RuleSet

        Returns:
            New list of transformed records. Empty when ``records`` is not
            a sequence of mappings.
        """
        rule_set = self.resolve_rules(rules)

        if not is_sequence_of_records(records):
            logger.warning(
                f"Expected a sequence of records, got {type(records).__name__}; "
                "returning an empty result"
            )
            return []

        logger.debug(
            f"Optimizing {len(records)} records with {len(rule_set.get_rules())} field rules"
        )
        steps = rule_set.record_steps()
        return [self._optimize_item(record, rule_set, steps) for record in records]

    def optimize_record(self, record: Mapping[str, Any], rule_set: RuleSet) -> Record:
        """Apply every step of ``rule_set`` to a copy of one record."""
        return self._optimize_item(record, rule_set, rule_set.record_steps())

    def _optimize_item(
        self, record: Mapping[str, Any], rule_set: RuleSet, steps: RecordSteps
    ) -> Record:
        item: Record = dict(record)

        self._apply_field_rules(item, rule_set)
        self._apply_renames(item, steps.renames)

        if steps.added_keys:
            item.update(steps.added_keys)

        for derived in steps.derived_keys:
            item[derived.target] = derived.callback(dict(item))

        for field in steps.removed_keys:
            item.pop(field, None)

        if steps.sort_keys is not None:
            item = sort_record(item, steps.sort_keys)

        return item

    def _apply_field_rules(self, item: Record, rule_set: RuleSet) -> None:
        for key, value in list(item.items()):
            if not rule_set.has_rule(key):
                continue
            result = rule_set.get_field_rule(key).apply(key, value)
            item[result.key] = result.value
            if result.removed_key:
                item.pop(result.removed_key, None)

    @staticmethod
    def _apply_renames(item: Record, renames: Mapping[str, str]) -> None:
        if not renames:
            return
        for key in list(item):
            new_name = renames.get(key)
            if new_name is None or new_name == key or key not in item:
                continue
            item[new_name] = item.pop(key)


def sort_record(item: Mapping[str, Any], sort_keys: Sequence[str]) -> Record:
    """
    Reorder fields to follow ``sort_keys``.

    Fields missing from ``sort_keys`` keep their relative order after the
    listed ones.
    """
    positions = {key: index for index, key in enumerate(sort_keys)}
    ordered = sorted(item, key=lambda key: positions.get(key, math.inf))
    return {key: item[key] for key in ordered}


def optimize(
    records: Sequence[Mapping[str, Any]],
    rules: RuleSource,
    settings: Optional[OptimizerSettings] = None,
) -> List[Record]:
    """Shortcut for ``Optimizer(settings).optimize(records, rules)``."""
    return Optimizer(settings=settings).optimize(records, rules)
