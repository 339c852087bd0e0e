"""
Include/exclude derivation for protected content listings.
"""

from typing import Any, List, Mapping, Optional

from shared.logging import get_logger

from .models import SENTINEL_ID, ExcludeInclude, RuleStatusFilter
from .rule import Rule


class FilterSetDeriver:
    """Derives the item ids a listing should include or exclude.

    Needs a membership directory to resolve the base membership and the
    membership a listing is scoped to.
    """

    def __init__(self, directory: Any):
        self.logger = get_logger("membership.rules.filters")
        self.directory = directory

    def get_exclude_include(self, rule: Rule, args: Optional[Mapping[str, Any]] = None) -> ExcludeInclude:
        """Ids to include or exclude for a membership/status filter.

        ``args`` may carry ``membership_id`` (scope the listing to that
        membership) and ``rule_status`` (a RuleStatusFilter). At most one of
        the returned lists is set.
        """
        args = args or {}
        include: List[Any] = []
        exclude: List[Any] = []

        membership_id = args.get("membership_id")
        base_rule = rule
        child_rule = rule

        if not rule.is_base_rule:
            base_rule = self.directory.get_base().get_rule(rule.rule_type)
        if membership_id:
            child_rule = self.directory.load(membership_id).get_rule(rule.rule_type)

        base_items = _granted_items(base_rule)
        child_items = _granted_items(child_rule)

        status = _coerce_status(args.get("rule_status"))

        if status == RuleStatusFilter.PROTECTED:
            if membership_id:
                base_set = set(base_items)
                include = [item_id for item_id in child_items if item_id in base_set]
            else:
                include = child_items
            if not include:
                include = [SENTINEL_ID]

        elif status == RuleStatusFilter.NOT_PROTECTED:
            if membership_id:
                child_set = set(child_items)
                include = [item_id for item_id in base_items if item_id not in child_set]
                if not include and not exclude:
                    include = [SENTINEL_ID]
            else:
                exclude = child_items
                if not include and not exclude:
                    exclude = [SENTINEL_ID]

        elif not child_rule.is_base_rule:
            # Members see everything the base rule protects.
            include = base_items

        res = ExcludeInclude()
        if include:
            res.include = include
        elif exclude:
            res.exclude = exclude
        elif membership_id:
            res.include = [SENTINEL_ID]

        self.logger.debug(
            "Listing filter derived",
            rule_type=rule.rule_type_name,
            membership_id=membership_id,
            rule_status=status.value if status else None,
            include_count=len(res.include or []),
            exclude_count=len(res.exclude or [])
        )
        return res


def _granted_items(rule: Rule) -> List[Any]:
    rule_value = rule.rule_value if isinstance(rule.rule_value, dict) else {}
    return [item_id for item_id, value in rule_value.items() if value]


def _coerce_status(value: Any) -> Optional[RuleStatusFilter]:
    if not value:
        return None
    try:
        return RuleStatusFilter(value)
    except (ValueError, TypeError):
        return None
