"""
Rule type registry and rule factory.
"""

from typing import Any, Dict, List, Optional, Type, Union

from shared.errors import UnknownRuleTypeError
from shared.logging import get_logger

from .events import RuleEventDispatcher
from .models import RuleType
from .rule import Rule


class RuleRegistry:
    """Maps rule types to the classes that implement them."""

    def __init__(
        self,
        events: Optional[RuleEventDispatcher] = None,
        clock: Optional[Any] = None
    ):
        self.logger = get_logger("membership.rules.registry")
        self.events = events if events is not None else RuleEventDispatcher()
        self.clock = clock
        self._classes: Dict[RuleType, Type[Rule]] = {}

    def register(self, rule_type: Union[RuleType, str], rule_class: Any) -> None:
        """Register the class implementing a rule type."""
        try:
            rule_type = RuleType(rule_type)
        except (ValueError, TypeError):
            raise UnknownRuleTypeError(rule_type)

        if not (isinstance(rule_class, type) and issubclass(rule_class, Rule)):
            raise UnknownRuleTypeError(
                rule_type.value,
                message="Rule class is not a Rule",
                details={"rule_class": repr(rule_class)}
            )

        self._classes[rule_type] = rule_class
        self.logger.debug("Rule class registered", rule_type=rule_type.value, rule_class=rule_class.__name__)

    def unregister(self, rule_type: Union[RuleType, str]) -> bool:
        try:
            return self._classes.pop(RuleType(rule_type), None) is not None
        except (ValueError, TypeError):
            return False

    def get_rule_class(self, rule_type: Union[RuleType, str]) -> Optional[Type[Rule]]:
        try:
            return self._classes.get(RuleType(rule_type))
        except (ValueError, TypeError):
            return None

    def is_registered(self, rule_type: Union[RuleType, str]) -> bool:
        return self.get_rule_class(rule_type) is not None

    def rule_types(self) -> List[RuleType]:
        """Registered rule types, in registration order."""
        return list(self._classes)

    def active_rule_types(self) -> List[RuleType]:
        """Registered rule types whose class reports itself active."""
        return [rule_type for rule_type, cls in self._classes.items() if cls.is_active()]

    def create(self, rule_type: Union[RuleType, str], membership: Any) -> Rule:
        """Build the rule of ``membership`` for ``rule_type``.

        Unregistered types degrade to a plain Rule instead of failing.
        """
        rule_class = self.get_rule_class(rule_type)
        if rule_class is None:
            self.logger.warning(
                "Rule type not registered",
                rule_type=str(getattr(rule_type, "value", rule_type)),
                membership_id=membership.id
            )
            rule_class = Rule

        return rule_class(
            membership.id,
            is_base_rule=membership.is_base(),
            rule_type=rule_type if _is_rule_type(rule_type) else None,
            events=self.events,
            clock=self.clock
        )


def _is_rule_type(value: Any) -> bool:
    try:
        RuleType(value)
    except (ValueError, TypeError):
        return False
    return True


def default_registry(
    events: Optional[RuleEventDispatcher] = None,
    clock: Optional[Any] = None
) -> RuleRegistry:
    """Registry with the generic Rule registered for every rule type."""
    registry = RuleRegistry(events=events, clock=clock)
    for rule_type in RuleType:
        registry.register(rule_type, Rule)
    return registry
