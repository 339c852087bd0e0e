"""
Membership model.

A membership owns one rule per active rule type. Rules are created eagerly
when the membership is built and are rebuilt whenever the membership is
reloaded; they have no storage identity of their own.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from shared.logging import get_logger

from ..rules.models import RuleType
from ..rules.registry import RuleRegistry, default_registry
from ..rules.rule import Rule


class MembershipRecord(BaseModel):
    """Stored form of a membership."""
    id: Any = Field(None, description="Membership ID")
    name: str = Field(..., description="Membership name")
    is_base: bool = Field(False, description="Whether this is the base membership")
    rules: Dict[str, List[Any]] = Field(default_factory=dict, description="Rule type -> ids with access")
    dripped: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Rule type -> drip schedule")


class Membership:
    """A membership tier and its protection rules."""

    def __init__(
        self,
        membership_id: Any,
        name: str,
        is_base: bool = False,
        registry: Optional[RuleRegistry] = None,
        repository: Optional[Any] = None
    ):
        self.logger = get_logger("membership.memberships")
        self.id = membership_id
        self.name = name
        self._is_base = bool(is_base)
        self.registry = registry if registry is not None else default_registry()
        self.repository = repository
        self.rules: Dict[Any, Rule] = {}

        for rule_type in self.registry.active_rule_types():
            self.rules[rule_type] = self.registry.create(rule_type, self)

    def is_base(self) -> bool:
        return self._is_base

    def get_rule(self, rule_type: Union[RuleType, str]) -> Rule:
        """Get the rule for a type, building it on first use."""
        key = _rule_key(rule_type)
        if key not in self.rules:
            self.rules[key] = self.registry.create(rule_type, self)
        return self.rules[key]

    def set_rule(self, rule_type: Union[RuleType, str], rule: Rule):
        self.rules[_rule_key(rule_type)] = rule

    def save(self):
        """Persist through the repository this membership was loaded from."""
        if self.repository is None:
            self.logger.warning("Membership has no repository; not saved", membership_id=self.id)
            return
        self.repository.save(self)

    def to_record(self) -> MembershipRecord:
        rules = {}
        dripped = {}
        for key, rule in self.rules.items():
            name = key.value if isinstance(key, RuleType) else str(key)
            rules[name] = rule.serialize()
            if rule.dripped.dripped_type or rule.dripped.items:
                dripped[name] = rule.dripped.to_mapping()

        return MembershipRecord(
            id=self.id,
            name=self.name,
            is_base=self._is_base,
            rules=rules,
            dripped=dripped
        )

    @classmethod
    def from_record(
        cls,
        record: MembershipRecord,
        registry: Optional[RuleRegistry] = None,
        repository: Optional[Any] = None
    ) -> "Membership":
        membership = cls(
            record.id,
            record.name,
            is_base=record.is_base,
            registry=registry,
            repository=repository
        )
        for rule_type, values in record.rules.items():
            membership.get_rule(rule_type).populate(values)
        for rule_type, schedule in record.dripped.items():
            membership.get_rule(rule_type).set_dripped(schedule)
        return membership

    def __repr__(self) -> str:
        return f"Membership(id={self.id!r}, name={self.name!r}, is_base={self._is_base})"


def _rule_key(rule_type: Union[RuleType, str]) -> Any:
    try:
        return RuleType(rule_type)
    except (ValueError, TypeError):
        return rule_type
