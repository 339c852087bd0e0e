"""
Unit tests for include/exclude derivation.
"""

from unittest.mock import MagicMock

import pytest

from service_membership.app.rules.filters import FilterSetDeriver
from service_membership.app.rules.models import (
    SENTINEL_ID, RuleStatusFilter, RuleType, RuleValue
)


@pytest.fixture
def base(directory):
    return directory.get_base()


@pytest.fixture
def gold(directory):
    return directory.create("Gold")


@pytest.fixture
def deriver(directory):
    return FilterSetDeriver(directory)


def grant(membership, *item_ids, rule_type=RuleType.PAGE):
    rule = membership.get_rule(rule_type)
    for item_id in item_ids:
        rule.give_access(item_id)
    membership.save()
    return rule


class TestProtectedFilter:
    """Test cases for the protected status."""

    def test_scoped_intersection(self, deriver, base, gold):
        """Test scoped listings include items both protected and granted."""
        grant(base, 1, 2, 3)
        rule = grant(gold, 2, 3)

        res = deriver.get_exclude_include(rule, {"membership_id": gold.id, "rule_status": "protected"})

        assert res.include == [2, 3]
        assert res.exclude is None

    def test_scoped_intersection_keeps_child_order(self, deriver, base, gold):
        grant(base, 1, 2, 3)
        rule = grant(gold, 3, 9, 1)

        res = deriver.get_exclude_include(rule, {"membership_id": gold.id, "rule_status": RuleStatusFilter.PROTECTED})

        assert res.include == [3, 1]

    def test_unscoped_uses_child_items(self, deriver, base, gold):
        """Test unscoped listings include everything the rule grants."""
        grant(base, 1)
        rule = grant(gold, 4, 5)

        res = deriver.get_exclude_include(rule, {"rule_status": "protected"})

        assert res.include == [4, 5]

    def test_empty_falls_back_to_sentinel(self, deriver, base, gold):
        """Test nothing protected yields the unmatchable id."""
        grant(base, 1)
        rule = gold.get_rule(RuleType.PAGE)

        res = deriver.get_exclude_include(rule, {"membership_id": gold.id, "rule_status": "protected"})

        assert res.include == [SENTINEL_ID]
        assert res.exclude is None


class TestNotProtectedFilter:
    """Test cases for the not-protected status."""

    def test_scoped_difference(self, deriver, base, gold):
        """Test scoped listings include protected items the membership lacks."""
        grant(base, 1, 2, 3)
        rule = gold.get_rule(RuleType.PAGE)

        res = deriver.get_exclude_include(rule, {"membership_id": gold.id, "rule_status": "not_protected"})

        assert res.include == [1, 2, 3]

    def test_scoped_difference_partial(self, deriver, base, gold):
        grant(base, 1, 2, 3)
        rule = grant(gold, 2)

        res = deriver.get_exclude_include(rule, {"membership_id": gold.id, "rule_status": "not_protected"})

        assert res.include == [1, 3]

    def test_scoped_empty_falls_back_to_sentinel(self, deriver, base, gold):
        grant(base, 1)
        rule = grant(gold, 1)

        res = deriver.get_exclude_include(rule, {"membership_id": gold.id, "rule_status": "not_protected"})

        assert res.include == [SENTINEL_ID]

    def test_unscoped_excludes_child_items(self, deriver, base, gold):
        """Test unscoped listings exclude everything the rule grants."""
        grant(base, 1, 2)
        rule = grant(gold, 2, 7)

        res = deriver.get_exclude_include(rule, {"rule_status": "not_protected"})

        assert res.include is None
        assert res.exclude == [2, 7]

    def test_unscoped_empty_excludes_sentinel(self, deriver, base, gold):
        rule = gold.get_rule(RuleType.PAGE)

        res = deriver.get_exclude_include(rule, {"rule_status": "not_protected"})

        assert res.include is None
        assert res.exclude == [SENTINEL_ID]


class TestDefaultFilter:
    """Test cases for listings without a status."""

    def test_member_rule_includes_base_items(self, deriver, base, gold):
        """Test memberships list everything the base rule protects."""
        grant(base, 1, 2, 3)
        rule = grant(gold, 2)

        res = deriver.get_exclude_include(rule, {})

        assert res.include == [1, 2, 3]

    def test_base_rule_is_unfiltered(self, deriver, base):
        """Test the base rule does not filter its own listing."""
        rule = grant(base, 1, 2, 3)

        res = deriver.get_exclude_include(rule)

        assert res.include is None
        assert res.exclude is None

    def test_dripped_status_uses_default_branch(self, deriver, base, gold):
        grant(base, 4)
        rule = gold.get_rule(RuleType.PAGE)

        res = deriver.get_exclude_include(rule, {"rule_status": "dripped"})

        assert res.include == [4]

    def test_scoped_to_base_membership_falls_back_to_sentinel(self, deriver, base, gold):
        """Test a scoped listing never ends up unfiltered."""
        grant(base, 1)
        rule = gold.get_rule(RuleType.PAGE)

        res = deriver.get_exclude_include(rule, {"membership_id": base.id})

        assert res.include == [SENTINEL_ID]

    def test_no_protected_items_means_no_filter(self, deriver, base, gold):
        rule = gold.get_rule(RuleType.PAGE)

        res = deriver.get_exclude_include(rule, {})

        assert res.include is None
        assert res.exclude is None


class TestFilterResolution:
    """Test cases for rule resolution."""

    def test_explicit_no_access_entries_ignored(self, deriver, base, gold):
        grant(base, 1, 2)
        rule = gold.get_rule(RuleType.PAGE)
        rule.rule_value[2] = RuleValue.NO_ACCESS
        rule.give_access(1)

        res = deriver.get_exclude_include(rule, {"rule_status": "protected"})

        assert res.include == [1]

    def test_directory_lookups(self, clock):
        """Test the base and scoped memberships come from the directory."""
        from service_membership.app.rules.rule import Rule

        base_rule = Rule(1, is_base_rule=True, rule_type=RuleType.PAGE, clock=clock)
        base_rule.give_access(1)
        base_rule.give_access(2)
        scoped_rule = Rule(2, rule_type=RuleType.PAGE, clock=clock)
        scoped_rule.give_access(2)

        directory = MagicMock()
        directory.get_base.return_value.get_rule.return_value = base_rule
        directory.load.return_value.get_rule.return_value = scoped_rule

        rule = Rule(3, rule_type=RuleType.PAGE, clock=clock)
        res = FilterSetDeriver(directory).get_exclude_include(
            rule, {"membership_id": 2, "rule_status": "protected"}
        )

        assert res.include == [2]
        directory.load.assert_called_once_with(2)
        directory.get_base.return_value.get_rule.assert_called_once_with(RuleType.PAGE)

    def test_only_one_list_is_set(self, deriver, base, gold):
        grant(base, 1, 2, 3)
        rule = grant(gold, 1)

        for status in (None, "protected", "not_protected", "dripped"):
            for scope in (None, gold.id):
                args = {"rule_status": status, "membership_id": scope}
                res = deriver.get_exclude_include(rule, args)
                assert res.include is None or res.exclude is None
