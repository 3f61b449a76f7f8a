# =============================================================================
# Unit Tests: RuleSet Registry
# =============================================================================

import pytest

from record_optimizer import (
    AttributeStore,
    OptimizerSettings,
    RuleConfigurationError,
    RuleNotFoundError,
    RuleSet,
    RuleTag,
)
from record_optimizer.transformations import (
    DateRule,
    DoubleRule,
    ModifyRule,
    PassThroughRule,
    RenameRule,
    ReplaceValueRule,
    SlugRule,
    StringRule,
    StripTagsRule,
)


# =============================================================================
# Test: rule accessors
# =============================================================================

class TestRuleAccessors:
    """Test has_rule, get_rule(s), set_rule(s)."""

    def test_rule_set_is_attribute_store(self, rule_set):
        """Test that RuleSet extends AttributeStore."""
        assert isinstance(rule_set, AttributeStore)

    def test_builders_register_tags(self, rule_set):
        """Test that builders register the expected tags and chain."""
        returned = rule_set.string("name").integer("age").json_decode("meta")

        assert returned is rule_set
        assert rule_set.get_rules() == {"name": "string", "age": "integer", "meta": "json_decode"}
        assert rule_set.has_rule("name")
        assert not rule_set.has_rule("city")

    def test_get_rule_missing_raises_lookup_error(self, rule_set):
        """Test that get_rule fails for fields without a rule."""
        with pytest.raises(RuleNotFoundError) as exc_info:
            rule_set.get_rule("city")
        assert isinstance(exc_info.value, LookupError)
        assert exc_info.value.field == "city"

    def test_last_rule_wins(self, rule_set):
        """Test that a field holds only its last rule."""
        rule_set.string("age").integer("age")
        assert rule_set.get_rule("age") == "integer"
        assert len(rule_set.get_rules()) == 1

    def test_set_rule_accepts_rule_instances_and_tags(self, rule_set):
        """Test set_rule with FieldRule objects, strings and RuleTag members."""
        rule_set.set_rule("a", StringRule())
        rule_set.set_rule("b", "double")
        rule_set.set_rule("c", RuleTag.BOOL)

        assert rule_set.get_rules() == {"a": "string", "b": "double", "c": "bool"}

    def test_set_rules_replaces_all(self, rule_set):
        """Test that set_rules discards earlier rules."""
        rule_set.string("name")
        rule_set.set_rules({"age": "integer"})
        assert rule_set.get_rules() == {"age": "integer"}

    def test_float_alias(self, rule_set):
        """Test that the float tag builds a double rule."""
        rule_set.set_rule("price", "float")
        assert isinstance(rule_set.get_field_rule("price"), DoubleRule)

    def test_unknown_tag_registers_pass_through(self, rule_set):
        """Test that unknown tags are kept but do nothing."""
        rule_set.set_rule("name", "shout")
        rule = rule_set.get_field_rule("name")
        assert isinstance(rule, PassThroughRule)
        assert rule_set.get_rule("name") == "shout"


# =============================================================================
# Test: parameterized builders
# =============================================================================

class TestParameterizedBuilders:
    """Test builders that store parameters."""

    def test_slug_stores_delimiter(self, rule_set):
        """Test slug delimiter storage."""
        rule_set.slug("title", "_")
        rule = rule_set.get_field_rule("title")
        assert isinstance(rule, SlugRule)
        assert rule.delimiter == "_"
        assert rule_set.get("slug") == "_"

    def test_slug_default_from_settings(self, monkeypatch):
        """Test that the default slug delimiter comes from settings."""
        monkeypatch.setenv("RECORD_OPTIMIZER_SLUG_DELIMITER", "+")
        rule_set = RuleSet(settings=OptimizerSettings(_env_file=None))
        rule_set.slug("title")
        assert rule_set.get_field_rule("title").delimiter == "+"

    def test_slug_parameters_are_per_field(self, rule_set):
        """Test that two slug rules keep their own delimiters."""
        rule_set.slug("a", "_").slug("b", ".")
        assert rule_set.get_field_rule("a").delimiter == "_"
        assert rule_set.get_field_rule("b").delimiter == "."

    def test_date_stores_formats(self, rule_set):
        """Test date format storage and default source format."""
        rule_set.date("published_at", "d/m/Y")
        rule = rule_set.get_field_rule("published_at")
        assert isinstance(rule, DateRule)
        assert rule.from_format == "Y-m-d H:i:s"
        assert rule.to_format == "d/m/Y"
        assert rule_set.get("from_format") == "Y-m-d H:i:s"
        assert rule_set.get("to_format") == "d/m/Y"

    def test_date_invalid_format_type(self, rule_set):
        """Test that invalid parameters become configuration errors."""
        with pytest.raises(RuleConfigurationError):
            rule_set.date("published_at", 123)

    def test_replacement_builders(self, rule_set):
        """Test set_value, replace_value and replace_text storage."""
        rule_set.set_value("password", "***")
        rule_set.replace_value("score", 0, -1)
        rule_set.replace_text("body", "foo", "bar")

        assert rule_set.get_rules() == {
            "password": "replace_value",
            "score": "replace_value_by_new",
            "body": "replace_text",
        }
        assert rule_set.get("replace_new_value") == "***"
        assert rule_set.get("replace_value_default") == 0
        assert rule_set.get("replace_value_new") == -1
        assert rule_set.get("replace_text_default") == "foo"
        assert rule_set.get("replace_text_new") == "bar"

        rule = rule_set.get_field_rule("score")
        assert isinstance(rule, ReplaceValueRule)
        assert (rule.default, rule.new) == (0, -1)

    def test_strip_tags(self, rule_set):
        """Test allowed tag parsing."""
        rule_set.strip_tags("body", "<b><i>")
        rule = rule_set.get_field_rule("body")
        assert isinstance(rule, StripTagsRule)
        assert rule.allowed_tags == ["b", "i"]
        assert rule_set.get("allowed_tags") == "<b><i>"

    def test_list_uses_settings_separator(self, rule_set):
        """Test that list rules take the configured separator."""
        rule_set.list("tags")
        assert rule_set.get_rule("tags") == "list"
        assert rule_set.get_field_rule("tags").separator == ","

    def test_modify_uses_field_specific_tag(self, rule_set):
        """Test modify tag and callback storage."""
        callback = lambda key, value: value  # noqa: E731
        rule_set.modify("age", callback).modify("name", callback)

        assert rule_set.get_rule("age") == "modify_age"
        assert rule_set.get_rule("name") == "modify_name"
        assert rule_set.get("callback_function_age") is callback
        assert isinstance(rule_set.get_field_rule("age"), ModifyRule)

    def test_modify_requires_callable(self, rule_set):
        """Test that modify rejects non-callables."""
        with pytest.raises(RuleConfigurationError):
            rule_set.modify("age", "not callable")

    def test_rename_tag_builder(self, rule_set):
        """Test the per-field rename rule."""
        rule_set.rename("name", "full_name")
        rule = rule_set.get_field_rule("name")
        assert isinstance(rule, RenameRule)
        assert rule.new_name == "full_name"
        assert rule_set.get_rule("name") == "rename"


# =============================================================================
# Test: tags resolved from attributes
# =============================================================================

class TestTagsFromAttributes:
    """Test that bare tags read parameters from the attribute store."""

    def test_slug_tag_reads_attribute(self, rule_set):
        """Test slug built from the stored delimiter."""
        rule_set.set("slug", "_")
        rule_set.set_rule("title", "slug")
        assert rule_set.get_field_rule("title").delimiter == "_"

    def test_date_tag_without_attributes_degrades(self, rule_set):
        """Test that a date tag without a target format passes through."""
        rule_set.set_rule("published_at", "date")
        rule = rule_set.get_field_rule("published_at")
        assert rule.to_format is None
        assert rule.transform("2024-03-05 14:07:00") == "2024-03-05 14:07:00"

    def test_replace_value_tag_without_attribute_writes_none(self, rule_set):
        """Test that a missing constant is written as None."""
        rule_set.set_rule("password", "replace_value")
        assert rule_set.get_field_rule("password").transform("secret") is None

    def test_modify_tag_reads_callback(self, rule_set):
        """Test modify built from callback_function_<field>."""
        rule_set.set("callback_function_age", lambda key, value: value * 2)
        rule_set.set_rule("age", "modify_age")
        assert rule_set.get_field_rule("age").apply("age", 4).value == 8

    def test_modify_tag_without_callback_passes_through(self, rule_set):
        """Test that a modify tag with no stored callback does nothing."""
        rule_set.set_rule("age", "modify_age")
        assert isinstance(rule_set.get_field_rule("age"), PassThroughRule)
        assert rule_set.get_rule("age") == "modify_age"

    def test_rename_tag_reads_new_name(self, rule_set):
        """Test rename built from new_key_name_<field>."""
        rule_set.set("new_key_name_name", "full_name")
        rule_set.set_rule("name", "rename")
        assert rule_set.get_field_rule("name").new_name == "full_name"

    def test_modify_tag_for_other_field_keeps_tag(self, rule_set):
        """Test that a modify tag naming another field keeps that tag and callback."""
        rule_set.set("callback_function_price", lambda key, value: f"{key}:{value}")
        rule_set.set_rule("cost", "modify_price")

        assert rule_set.get_rule("cost") == "modify_price"
        assert rule_set.get_field_rule("cost").apply("cost", 3).value == "cost:3"

    @pytest.mark.parametrize(
        "key, value, tag",
        [
            ("slug", 5, "slug"),
            ("to_format", ["d/m/Y"], "date"),
            ("allowed_tags", 5, "strip_tags"),
            ("allowed_tags", ["b", 3], "strip_tags"),
            ("new_key_name_name", {"full": 1}, "rename"),
        ],
    )
    def test_invalid_attribute_raises_configuration_error(self, rule_set, key, value, tag):
        """Test that bad stored parameters surface as RuleConfigurationError."""
        rule_set.set(key, value)

        with pytest.raises(RuleConfigurationError):
            rule_set.set_rule("name", tag)
        assert not rule_set.has_rule("name")

    def test_invalid_allowed_tags_in_builder(self, rule_set):
        """Test that strip_tags rejects non-string tag names."""
        with pytest.raises(RuleConfigurationError):
            rule_set.strip_tags("body", ["b", 3])


# =============================================================================
# Test: record-level operations
# =============================================================================

class TestRecordOperations:
    """Test builders that do not register a field rule."""

    def test_rename_key_stores_attribute_pair(self, rule_set):
        """Test rename_key attributes and absence of a rule tag."""
        rule_set.rename_key("name", "full_name")

        assert not rule_set.has_rule("name")
        assert rule_set.get("rename_name") == "name"
        assert rule_set.get("new_key_name_name") == "full_name"
        assert rule_set.renames == {"name": "full_name"}

    def test_remove_keys(self, rule_set):
        """Test remove_keys storage."""
        rule_set.remove_keys(["city", "role"])
        assert rule_set.removed_keys == ["city", "role"]
        assert rule_set.get("remove_keys") == ["city", "role"]

    def test_add_keys(self, rule_set):
        """Test add_keys storage."""
        rule_set.add_keys({"role": "user"})
        assert rule_set.added_keys == {"role": "user"}
        assert rule_set.get("add_keys") == {"role": "user"}

    @pytest.mark.parametrize("keys", [["role"], {}, "role", None, {1: "a"}])
    def test_add_keys_requires_non_empty_mapping(self, rule_set, keys):
        """Test that add_keys rejects anything but a non-empty keyed mapping."""
        with pytest.raises(RuleConfigurationError):
            rule_set.add_keys(keys)

    def test_add_key_use_item_increments_counter(self, rule_set):
        """Test derived-key registration and counter."""
        first = lambda record: 1  # noqa: E731
        second = lambda record: 2  # noqa: E731

        assert rule_set.increment == 1
        rule_set.add_key_use_item("one", first).add_key_use_item("two", second)

        assert rule_set.increment == 3
        assert rule_set.get("add_keys_by_using_item_2") == "one"
        assert rule_set.get("add_keys_by_using_item_callback_2") is first
        assert rule_set.get("add_keys_by_using_item_3") == "two"
        assert [(d.index, d.target) for d in rule_set.derived_keys] == [(2, "one"), (3, "two")]

    def test_add_key_use_item_requires_callable(self, rule_set):
        """Test that derived keys need a callable."""
        with pytest.raises(RuleConfigurationError):
            rule_set.add_key_use_item("one", 1)
        assert rule_set.increment == 1

    def test_sort_by_keys(self, rule_set):
        """Test sort_by_keys storage."""
        assert rule_set.sort_keys is None
        rule_set.sort_by_keys(("id", "name"))
        assert rule_set.sort_keys == ["id", "name"]
        assert rule_set.get("sort") == ["id", "name"]

    def test_properties_return_copies(self, rule_set):
        """Test that record-level properties cannot mutate the rule set."""
        rule_set.remove_keys(["city"])
        rule_set.removed_keys.append("age")
        assert rule_set.removed_keys == ["city"]


# =============================================================================
# Test: record-level operations configured through attributes
# =============================================================================

class TestRecordOperationsFromAttributes:
    """Test that record-level operations are read from the attribute store."""

    def test_steps_read_from_set_attributes(self, rule_set):
        """Test renames, added, removed and sort keys set without builders."""
        rule_set.set("rename_name", "name")
        rule_set.set("new_key_name_name", "full_name")
        rule_set.set("add_keys", {"role": "user"})
        rule_set.set("remove_keys", ["city"])
        rule_set.set("sort", ["role"])

        assert rule_set.renames == {"name": "full_name"}
        assert rule_set.added_keys == {"role": "user"}
        assert rule_set.removed_keys == ["city"]
        assert rule_set.sort_keys == ["role"]

    def test_single_field_strings_are_accepted(self, rule_set):
        """Test that a bare field name counts as a one-item list."""
        rule_set.set("remove_keys", "city")
        assert rule_set.removed_keys == ["city"]

    def test_forget_unregisters_step(self, rule_set):
        """Test that forgetting an attribute removes the operation."""
        rule_set.remove_keys(["city"]).add_keys({"role": "user"}).rename_key("name", "full_name")

        rule_set.forget("remove_keys")
        rule_set.forget("add_keys")
        rule_set.forget("rename_name")

        assert rule_set.removed_keys == []
        assert rule_set.added_keys == {}
        assert rule_set.renames == {}

    def test_rename_needs_both_attributes(self, rule_set):
        """Test that a rename entry without a new name is ignored."""
        rule_set.set("rename_name", "name")
        assert rule_set.renames == {}

    def test_legacy_rename_is_not_a_record_rename(self, rule_set):
        """Test that the rename tag does not also register a record-level rename."""
        rule_set.rename("name", "full_name")
        assert rule_set.renames == {}

    def test_derived_key_at_first_index(self, rule_set):
        """Test that index 1, within the initial increment, is read."""
        callback = lambda record: 1  # noqa: E731
        rule_set.set("add_keys_by_using_item_1", "one")
        rule_set.set("add_keys_by_using_item_callback_1", callback)

        assert rule_set.derived_keys == [(1, "one", callback)]

    def test_derived_key_without_callable_raises(self, rule_set):
        """Test that a stored derived field needs a callable callback."""
        rule_set.set("add_keys_by_using_item_1", "one")
        with pytest.raises(RuleConfigurationError):
            rule_set.derived_keys

    @pytest.mark.parametrize("key, value", [("add_keys", ["role"]), ("remove_keys", 5), ("sort", {"a": 1})])
    def test_malformed_attribute_raises(self, rule_set, key, value):
        """Test that malformed operation attributes are reported."""
        rule_set.set(key, value)
        with pytest.raises(RuleConfigurationError):
            rule_set.record_steps()

    def test_record_steps_snapshot(self, rule_set):
        """Test that record_steps bundles every operation."""
        rule_set.rename_key("a", "b").add_keys({"c": 1}).remove_keys(["d"]).sort_by_keys(["b"])

        steps = rule_set.record_steps()

        assert steps.renames == {"a": "b"}
        assert steps.added_keys == {"c": 1}
        assert steps.derived_keys == []
        assert steps.removed_keys == ["d"]
        assert steps.sort_keys == ["b"]
