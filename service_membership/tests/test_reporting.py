"""
Unit tests for content access reporting.
"""

from unittest.mock import MagicMock

from service_membership.app.reporting.access_report import (
    AccessCount, ContentItem, count_item_access, filter_content
)
from service_membership.app.rules.models import RuleStatusFilter


def make_provider(contents, total):
    provider = MagicMock()
    provider.get_contents.return_value = contents
    provider.get_content_count.return_value = total
    return provider


class TestCountItemAccess:
    """Test cases for count_item_access."""

    def test_member_rule_counts(self, rule):
        """Test accessible items are derived from the total on ordinary rules."""
        provider = make_provider(
            [ContentItem(1, access=True), ContentItem(2, access=False), ContentItem(3, access=False)],
            total=10
        )

        count = count_item_access(rule, provider, {"post_type": "page"})

        assert count == AccessCount(total=10, accessible=8, restricted=2)
        args = provider.get_contents.call_args[0][0]
        assert args["posts_per_page"] == 0
        assert args["offset"] is False
        assert args["post_type"] == "page"
        assert "default" not in args

    def test_base_rule_counts(self, base_rule):
        """Test restricted items are derived from the total on the base rule."""
        provider = make_provider(
            [ContentItem(1, access=True), ContentItem(2, access=False)],
            total=5
        )

        count = count_item_access(base_rule, provider)

        assert count == AccessCount(total=5, accessible=1, restricted=4)
        assert provider.get_content_count.call_args[0][0]["default"] == 1

    def test_malformed_rule_values_reset(self, rule):
        """Test a non-mapping rule_value is reset instead of raising."""
        rule.rule_value = "corrupted"

        count = count_item_access(rule, make_provider([], total=0))

        assert rule.rule_value == {}
        assert count.total == 0


class TestFilterContent:
    """Test cases for filter_content."""

    def contents(self):
        return [
            ContentItem(1, access=True),
            ContentItem(2, access=False),
            ContentItem(3, access=False, delayed_period="2 weeks"),
            ContentItem(4, access=False, ignore=True),
        ]

    def ids(self, contents):
        return [content.id for content in contents]

    def test_protected(self):
        assert self.ids(filter_content(RuleStatusFilter.PROTECTED, self.contents())) == [1, 4]

    def test_not_protected(self):
        assert self.ids(filter_content("not_protected", self.contents())) == [2, 3, 4]

    def test_dripped(self):
        assert self.ids(filter_content("dripped", self.contents())) == [3, 4]

    def test_no_status_keeps_everything(self):
        assert self.ids(filter_content(None, self.contents())) == [1, 2, 3, 4]
        assert self.ids(filter_content("unknown", self.contents())) == [1, 2, 3, 4]

    def test_mapping_contents(self):
        contents = {content.id: content for content in self.contents()}

        filtered = filter_content("protected", contents)

        assert list(filtered) == [1, 4]
