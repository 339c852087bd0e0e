"""
Rule event notifications.

Rules notify listeners synchronously after every state change (and after
each access decision). Listeners observe only; nothing they return or raise
feeds back into rule state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, TYPE_CHECKING

from shared.logging import get_logger
from shared.metrics import MetricsCollector

if TYPE_CHECKING:
    from .rule import Rule


# Operations that change rule state. Everything else is a read notification.
MUTATING_OPERATIONS = frozenset({
    "set_access",
    "give_access",
    "remove_access",
    "toggle_access",
    "reset_rule_values",
    "merge_rule_values",
    "set_dripped_value",
    "set_dripped",
    "set_rule_type",
})


@dataclass
class RuleEvent:
    """A single notification emitted by a rule."""
    operation: str
    rule: "Rule"
    args: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_mutation(self) -> bool:
        return self.operation in MUTATING_OPERATIONS


class RuleEventListener(Protocol):
    """Anything that wants to observe rule events."""

    def notify(self, event: RuleEvent) -> None:
        ...


class RuleEventDispatcher:
    """Delivers rule events to registered listeners."""

    def __init__(self, listeners: Optional[List[RuleEventListener]] = None):
        self.logger = get_logger("membership.rules.events")
        self.listeners: List[RuleEventListener] = list(listeners or [])

    def subscribe(self, listener: RuleEventListener) -> None:
        """Register a listener."""
        if listener not in self.listeners:
            self.listeners.append(listener)

    def unsubscribe(self, listener: RuleEventListener) -> bool:
        """Remove a listener."""
        if listener in self.listeners:
            self.listeners.remove(listener)
            return True
        return False

    def emit(self, operation: str, rule: "Rule", **args: Any) -> RuleEvent:
        """Notify every listener of an operation on a rule."""
        event = RuleEvent(operation=operation, rule=rule, args=args)

        for listener in list(self.listeners):
            try:
                listener.notify(event)
            except Exception as e:
                self.logger.error(
                    "Rule event listener failed",
                    operation=operation,
                    listener=type(listener).__name__,
                    error=str(e)
                )

        return event


class LoggingRuleListener:
    """Logs rule mutations at debug level."""

    def __init__(self, logger_name: str = "membership.rules.audit"):
        self.logger = get_logger(logger_name)

    def notify(self, event: RuleEvent) -> None:
        if not event.is_mutation:
            return

        self.logger.debug(
            "Rule changed",
            operation=event.operation,
            membership_id=event.rule.membership_id,
            rule_type=event.rule.rule_type_name,
            args={key: _loggable(value) for key, value in event.args.items()}
        )


class MetricsRuleListener:
    """Counts rule mutations and access decisions."""

    def __init__(self, collector: MetricsCollector):
        self.collector = collector

    def notify(self, event: RuleEvent) -> None:
        rule_type = event.rule.rule_type_name

        if event.operation == "has_access":
            self.collector.record_access_decision(rule_type, bool(event.args.get("result")))
        elif event.is_mutation:
            self.collector.record_mutation(event.operation, rule_type)


def _loggable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return repr(value)
