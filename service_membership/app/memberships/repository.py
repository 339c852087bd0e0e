"""
Membership storage.

The rule engine never assumes a storage mechanism; it talks to a
MembershipRepository. The in-memory implementation keeps serialized
records, so every load returns freshly built membership and rule objects.
"""

import itertools
from typing import Any, Dict, List, Optional, Protocol

from shared.errors import MembershipNotFoundError, ValidationError
from shared.logging import get_logger

from ..rules.registry import RuleRegistry, default_registry
from .model import Membership, MembershipRecord


class MembershipRepository(Protocol):
    """Storage collaborator for memberships."""

    def create(self, name: str, is_base: bool = False) -> Membership:
        ...

    def load(self, membership_id: Any) -> Membership:
        ...

    def save(self, membership: Membership) -> Membership:
        ...

    def delete(self, membership_id: Any) -> bool:
        ...

    def list_all(self) -> List[Membership]:
        ...


class InMemoryMembershipRepository:
    """Repository keeping membership records in a dict."""

    def __init__(self, registry: Optional[RuleRegistry] = None):
        self.logger = get_logger("membership.memberships.repository")
        self.registry = registry if registry is not None else default_registry()
        self._records: Dict[Any, MembershipRecord] = {}
        self._ids = itertools.count(1)

    def create(self, name: str, is_base: bool = False) -> Membership:
        """Build and store a new membership with a generated id."""
        membership = Membership(
            self._next_id(),
            name,
            is_base=is_base,
            registry=self.registry,
            repository=self
        )
        return self.save(membership)

    def load(self, membership_id: Any) -> Membership:
        record = self._records.get(membership_id)
        if record is None:
            raise MembershipNotFoundError(membership_id)
        return Membership.from_record(record, registry=self.registry, repository=self)

    def save(self, membership: Membership) -> Membership:
        if membership.id is None:
            raise ValidationError("Membership id is required", details={"name": membership.name})
        membership.repository = self
        self._records[membership.id] = membership.to_record()
        self.logger.debug("Membership saved", membership_id=membership.id, name=membership.name)
        return membership

    def delete(self, membership_id: Any) -> bool:
        if self._records.pop(membership_id, None) is None:
            return False
        self.logger.info("Membership deleted", membership_id=membership_id)
        return True

    def exists(self, membership_id: Any) -> bool:
        return membership_id in self._records

    def list_all(self) -> List[Membership]:
        return [self.load(membership_id) for membership_id in self._records]

    def _next_id(self) -> int:
        membership_id = next(self._ids)
        while membership_id in self._records:
            membership_id = next(self._ids)
        return membership_id
