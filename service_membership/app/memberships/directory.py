"""
Membership directory.

Resolves the base membership and scoped memberships for the rule engine
and caches the list of all memberships. The cache is explicit: it is filled
on first use and dropped by ``invalidate()``. Memberships created or saved
through the directory join the cached list, so each membership has exactly
one live object per cache fill; deleting one invalidates the cache.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from shared.logging import get_logger

from ..rules.models import RuleType
from .model import Membership

BASE_MEMBERSHIP_NAME = "Visitor"


class MembershipDirectory:
    """Cached access to the memberships of a repository."""

    def __init__(self, repository: Any):
        self.logger = get_logger("membership.memberships.directory")
        self.repository = repository
        self._memberships: Optional[List[Membership]] = None

    def invalidate(self):
        """Drop cached memberships; the next lookup reloads them."""
        self._memberships = None
        self.logger.debug("Membership cache invalidated")

    def _load_all(self) -> List[Membership]:
        if self._memberships is None:
            self._memberships = list(self.repository.list_all())
            self.logger.debug("Membership cache loaded", count=len(self._memberships))
        return self._memberships

    def get_memberships(self, include_base: bool = False) -> List[Membership]:
        """All memberships, the base membership only when asked for."""
        return [m for m in self._load_all() if include_base or not m.is_base()]

    def get_base(self) -> Membership:
        """The base membership, created on first use when missing."""
        for membership in self._load_all():
            if membership.is_base():
                return membership

        base = self.create(BASE_MEMBERSHIP_NAME, is_base=True)
        self.logger.info("Base membership created", membership_id=base.id)
        return base

    def load(self, membership_id: Any) -> Membership:
        """A membership by id, served from the cache when possible."""
        for membership in self._load_all():
            if membership.id == membership_id:
                return membership

        return self.repository.load(membership_id)

    def create(self, name: str, is_base: bool = False) -> Membership:
        cached = self._load_all()
        membership = self.repository.create(name, is_base=is_base)
        cached.append(membership)
        return membership

    def save(self, membership: Membership) -> Membership:
        cached = self._load_all()
        is_new = not any(m.id == membership.id for m in cached)
        self.repository.save(membership)
        if is_new:
            cached.append(membership)
        return membership

    def delete(self, membership_id: Any) -> bool:
        deleted = self.repository.delete(membership_id)
        if deleted:
            self.invalidate()
        return deleted

    def get_rule_memberships(self, rule_type: Union[RuleType, str], item_id: Any) -> Dict[Any, str]:
        """Memberships whose rule grants the item: ``{membership_id: name}``."""
        res = {}
        for membership in self.get_memberships():
            if membership.get_rule(rule_type).get_rule_value(item_id):
                res[membership.id] = membership.name
        return res

    def set_rule_memberships(
        self,
        rule_type: Union[RuleType, str],
        item_id: Any,
        membership_ids: Iterable[Any]
    ):
        """Protect an item for exactly the given memberships.

        The base rule protects the item while at least one membership grants
        it. Every membership is saved.
        """
        membership_ids = list(membership_ids)

        base = self.get_base()
        base_rule = base.get_rule(rule_type)
        is_protected = bool(base_rule.get_rule_value(item_id))
        should_protect = bool(membership_ids)

        if not should_protect:
            base_rule.remove_access(item_id)
        elif not is_protected:
            base_rule.give_access(item_id)
        base.set_rule(rule_type, base_rule)
        base.save()

        for membership in self.get_memberships():
            rule = membership.get_rule(rule_type)
            if membership.id in membership_ids:
                rule.give_access(item_id)
            else:
                rule.remove_access(item_id)
            membership.set_rule(rule_type, rule)
            membership.save()

        self.logger.info(
            "Item protection updated",
            rule_type=str(getattr(rule_type, "value", rule_type)),
            item_id=item_id,
            membership_ids=membership_ids
        )
