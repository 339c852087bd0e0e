"""
Content access summaries.

Content enumeration belongs to the concrete rule types; here it is a
ContentProvider collaborator returning ContentItem rows with the access
flag already evaluated.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, Field

from shared.logging import get_logger

from ..rules.models import RuleStatusFilter
from ..rules.rule import Rule

logger = get_logger("membership.reporting")


@dataclass
class ContentItem:
    """A protectable content item as listed by a content provider."""
    id: Any
    access: bool
    ignore: bool = False
    delayed_period: Optional[str] = None


class ContentProvider(Protocol):
    """Enumerates the content governed by a rule."""

    def get_contents(self, args: Optional[Mapping[str, Any]] = None) -> List[ContentItem]:
        ...

    def get_content_count(self, args: Optional[Mapping[str, Any]] = None) -> int:
        ...


class AccessCount(BaseModel):
    """Access summary of a rule's content."""
    total: int = Field(0, description="Total content count")
    accessible: int = Field(0, description="Accessible content count")
    restricted: int = Field(0, description="Protected content count")


def count_item_access(
    rule: Rule,
    provider: ContentProvider,
    args: Optional[Mapping[str, Any]] = None
) -> AccessCount:
    """Count accessible and restricted content of a rule.

    The listed rows only cover items with a rule entry, so the side not
    counted directly is derived from the total: restricted items for the
    base rule, accessible items otherwise.
    """
    args = dict(args or {})
    if rule.is_base_rule:
        args["default"] = 1
    args["posts_per_page"] = 0
    args["offset"] = False

    total = provider.get_content_count(args)
    contents = provider.get_contents(args)

    if not isinstance(rule.rule_value, dict):
        logger.warning(
            "Resetting malformed rule values",
            membership_id=rule.membership_id,
            rule_type=rule.rule_type_name
        )
        rule.rule_value = {}

    count_accessible = sum(1 for content in contents if content.access)
    count_restricted = len(contents) - count_accessible

    if rule.is_base_rule:
        count_restricted = total - count_accessible
    else:
        count_accessible = total - count_restricted

    return AccessCount(total=total, accessible=count_accessible, restricted=count_restricted)


def filter_content(
    status: Optional[Union[RuleStatusFilter, str]],
    contents: Union[List[ContentItem], Dict[Any, ContentItem]]
) -> Union[List[ContentItem], Dict[Any, ContentItem]]:
    """Keep the contents matching a protection status; ignored items always stay."""
    try:
        status = RuleStatusFilter(status) if status else None
    except ValueError:
        status = None

    def keep(content: ContentItem) -> bool:
        if content.ignore:
            return True
        if status == RuleStatusFilter.PROTECTED:
            return bool(content.access)
        if status == RuleStatusFilter.NOT_PROTECTED:
            return not content.access
        if status == RuleStatusFilter.DRIPPED:
            return bool(content.delayed_period)
        return True

    if isinstance(contents, dict):
        return {key: content for key, content in contents.items() if keep(content)}
    return [content for content in contents if keep(content)]
