"""
Membership protection rule.

A rule holds, for one content category of one membership, which items are
listed as accessible (``rule_value``) and when dripped items become
available (``dripped``).

Access polarity depends on the owning membership. For an ordinary
membership an entry means "members may see this item". For the base
membership an entry means "this item is protected", so the base rule
inverts stored values when evaluating access. Items without any entry are
not governed by the rule and stay accessible.
"""

import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from shared.logging import get_logger

from .events import RuleEventDispatcher
from .models import (
    DripField, DrippedSchedule, DrippedType, RuleType, RuleValue
)
from .period import (
    DateLike, SystemClock, add_interval, to_date, validate_period,
    validate_period_type, validate_period_unit
)


_INT_KEY = re.compile(r"^-?(0|[1-9][0-9]*)$")


def item_key(item_id: Any) -> Optional[Union[int, str]]:
    """Normalise an item id into a rule_value key.

    Returns None for ids that cannot be keys (non-scalars). Decimal integer
    strings become ints so "5" and 5 address the same item.
    """
    if isinstance(item_id, bool) or item_id is None:
        return None
    if isinstance(item_id, int):
        return item_id
    if isinstance(item_id, float):
        return int(item_id) if item_id.is_integer() else None
    if isinstance(item_id, str):
        if _INT_KEY.match(item_id):
            return int(item_id)
        return item_id
    return None


def is_empty_id(item_id: Any) -> bool:
    """True for ids that name no item at all (None, "", 0, "0")."""
    if isinstance(item_id, str):
        return item_id in ("", "0")
    return not item_id


class Rule:
    """Access rule of one membership for one rule type."""

    def __init__(
        self,
        membership_id: Any,
        is_base_rule: bool = False,
        rule_type: Optional[Union[RuleType, str]] = None,
        events: Optional[RuleEventDispatcher] = None,
        clock: Optional[Any] = None
    ):
        self.logger = get_logger("membership.rules")
        self._membership_id = membership_id
        self._is_base_rule = bool(is_base_rule)
        self._rule_type: Optional[RuleType] = None
        self.events = events if events is not None else RuleEventDispatcher()
        self.clock = clock if clock is not None else SystemClock()

        self.rule_value: Dict[Any, bool] = {}
        self.dripped = DrippedSchedule()

        if rule_type is not None:
            self._rule_type = _coerce_rule_type(rule_type)
            if self._rule_type is None:
                self.logger.warning("Ignoring invalid rule type", rule_type=str(rule_type))

        self.initialize()

    def initialize(self):
        """Hook for subclasses that need per-instance setup."""

    @classmethod
    def is_active(cls) -> bool:
        """Rules provided by optional add-ons override this."""
        return True

    @property
    def membership_id(self) -> Any:
        return self._membership_id

    @property
    def is_base_rule(self) -> bool:
        return self._is_base_rule

    @property
    def rule_type(self) -> Optional[RuleType]:
        return self._rule_type

    @property
    def rule_type_name(self) -> Optional[str]:
        return self._rule_type.value if self._rule_type else None

    def set_rule_type(self, value: Union[RuleType, str]) -> bool:
        """Set the rule type; values outside RuleType are ignored."""
        rule_type = _coerce_rule_type(value)
        if rule_type is None:
            self.logger.warning("Ignoring invalid rule type", rule_type=str(value))
            return False

        self._rule_type = rule_type
        self.events.emit("set_rule_type", self, value=rule_type)
        return True

    def today(self) -> date:
        return self.clock.today()

    # Rule values

    def has_rules(self) -> bool:
        """Whether any item is listed with access."""
        return any(self.rule_value.values())

    def count_rules(self, has_access_only: bool = True) -> int:
        """Count granted entries, or every stored entry."""
        if has_access_only:
            return sum(1 for value in self.rule_value.values() if value)
        return len(self.rule_value)

    def get_rule_value(self, item_id: Any) -> Optional[bool]:
        """Get the stored value for an item, or None when nothing is stored."""
        key = item_key(item_id)
        if key is None:
            return None
        return self.rule_value.get(key)

    def set_access(self, item_id: Any, access: Any):
        """Grant or revoke access; revoking removes the entry."""
        key = item_key(item_id)
        if key is None:
            self.logger.warning("Ignoring access change for invalid item id", item_id=repr(item_id))
            return

        if access:
            self.rule_value[key] = RuleValue.HAS_ACCESS
        else:
            self.rule_value.pop(key, None)

        self.events.emit("set_access", self, item_id=key, access=bool(access))

    def give_access(self, item_id: Any):
        self.set_access(item_id, RuleValue.HAS_ACCESS)
        self.events.emit("give_access", self, item_id=item_id)

    def remove_access(self, item_id: Any):
        self.set_access(item_id, RuleValue.NO_ACCESS)
        self.events.emit("remove_access", self, item_id=item_id)

    def toggle_access(self, item_id: Any):
        self.set_access(item_id, not self.get_rule_value(item_id))
        self.events.emit("toggle_access", self, item_id=item_id)

    def reset_rule_values(self):
        """Forget every item entry."""
        self.rule_value = {}
        self.events.emit("reset_rule_values", self)

    def serialize(self) -> List[Any]:
        """Ids of items with access, in insertion order.

        Explicit no-access entries are not part of the serialized form.
        """
        return [item_id for item_id, state in self.rule_value.items() if state]

    def populate(self, values: Iterable[Any]):
        """Rebuild rule values from a serialized id list."""
        for item_id in values:
            self.give_access(item_id)

    # Access

    def has_access(self, item_id: Any = None) -> bool:
        """Whether the item is accessible under this rule."""
        if is_empty_id(item_id):
            has_access = False
        else:
            value = self.get_rule_value(item_id)
            if value is None:
                # Not governed by this rule.
                has_access = RuleValue.HAS_ACCESS
            elif self._is_base_rule:
                has_access = not value
            else:
                has_access = bool(value)

        self.events.emit("has_access", self, item_id=item_id, result=has_access)
        return has_access

    # Dripped content

    @staticmethod
    def is_valid_dripped_type(dripped_type: Any) -> bool:
        return _coerce_dripped_type(dripped_type) is not None

    def get_dripped_type(self) -> DrippedType:
        """The current drip policy; specific date when none was chosen."""
        return self.dripped.dripped_type or DrippedType.SPEC_DATE

    def has_dripped_rules(self, item_id: Any = None) -> bool:
        """Whether the item has drip data under the current drip policy."""
        if is_empty_id(item_id):
            return False

        entry = self.dripped.entries(self.get_dripped_type()).get(item_key(item_id))
        return bool(entry)

    def get_dripped_value(self, dripped_type: Any, item_id: Any, field: Union[DripField, str]) -> Any:
        """Get a stored drip field, falling back to the field default."""
        dripped_type = _coerce_dripped_type(dripped_type)
        field_name = field.value if isinstance(field, DripField) else str(field)

        if dripped_type is not None:
            entry = self.dripped.entries(dripped_type).get(item_key(item_id), {})
            if entry.get(field_name) is not None:
                return entry[field_name]

        if field_name == DripField.PERIOD_UNIT.value:
            return validate_period_unit(None, 0)
        if field_name == DripField.PERIOD_TYPE.value:
            return validate_period_type(None)
        if field_name == DripField.SPEC_DATE.value:
            return self.today()
        return None

    def set_dripped_value(self, dripped_type: Any, item_id: Any, field: Union[DripField, str], value: Any):
        """Store a drip field and make ``dripped_type`` the current policy."""
        drip_type = _coerce_dripped_type(dripped_type)
        key = item_key(item_id)
        if drip_type is None or key is None:
            self.logger.warning(
                "Ignoring invalid dripped value",
                dripped_type=str(dripped_type),
                item_id=repr(item_id)
            )
            return

        field_name = field.value if isinstance(field, DripField) else str(field)
        entry = self.dripped.items.setdefault(drip_type, {}).setdefault(key, {})
        entry[field_name] = _normalize_drip_field(field_name, value)

        self.dripped.dripped_type = drip_type
        self.dripped.modified = self.today()

        if drip_type == DrippedType.FROM_TODAY:
            entry[DripField.AVAIL_DATE.value] = self.get_dripped_avail_date(key)

        self.events.emit(
            "set_dripped_value",
            self,
            dripped_type=drip_type,
            item_id=key,
            field=field_name,
            value=value
        )

    def set_dripped(self, schedule: Union[DrippedSchedule, Mapping[str, Any]]) -> bool:
        """Replace the drip schedule after validating every entry.

        Accepts a DrippedSchedule or a mapping shaped like
        ``{"dripped_type": ..., "modified": ..., <dripped type>: {item_id: {...}}}``.
        """
        if isinstance(schedule, DrippedSchedule):
            dripped_type = schedule.dripped_type
            modified = schedule.modified
            raw_items: Mapping[Any, Any] = schedule.items
        elif isinstance(schedule, Mapping):
            dripped_type = schedule.get("dripped_type")
            modified = schedule.get("modified")
            raw_items = {
                key: value for key, value in schedule.items()
                if key not in ("dripped_type", "modified")
            }
        else:
            self.logger.warning("Ignoring malformed dripped schedule", value_type=type(schedule).__name__)
            return False

        items: Dict[DrippedType, Dict[Any, Dict[str, Any]]] = {}
        for raw_type, entries in raw_items.items():
            drip_type = _coerce_dripped_type(raw_type)
            if drip_type is None or not isinstance(entries, Mapping):
                self.logger.warning("Dropping invalid dripped entries", dripped_type=str(raw_type))
                continue

            validated = {}
            for raw_id, period in entries.items():
                key = item_key(raw_id)
                if key is None or not isinstance(period, Mapping):
                    continue
                period = validate_period(period)
                validated[key] = {
                    name: _normalize_drip_field(name, value) for name, value in period.items()
                }
            items[drip_type] = validated

        self.dripped = DrippedSchedule(
            dripped_type=_coerce_dripped_type(dripped_type) if dripped_type else None,
            modified=to_date(modified) if modified else None,
            items=items
        )
        self.events.emit("set_dripped", self, dripped_type=self.dripped.dripped_type)
        return True

    def get_dripped_avail_date(self, item_id: Any, start_date: Optional[DateLike] = None) -> date:
        """When the item becomes available under the current drip policy."""
        dripped_type = self.get_dripped_type()

        if dripped_type == DrippedType.FROM_TODAY:
            modified = self.dripped.modified or self.today()
            start = modified
        elif dripped_type == DrippedType.FROM_REGISTRATION:
            start = to_date(start_date) if start_date else self.today()
        else:
            return to_date(self.get_dripped_value(dripped_type, item_id, DripField.SPEC_DATE))

        period_unit = self.get_dripped_value(dripped_type, item_id, DripField.PERIOD_UNIT)
        period_type = self.get_dripped_value(dripped_type, item_id, DripField.PERIOD_TYPE)
        return add_interval(period_unit, period_type, start)

    def has_dripped_access(self, start_date: Optional[DateLike], item_id: Any) -> bool:
        """Whether the item is released and accessible.

        A passed release date never grants access on its own: the result is
        the release check AND has_access().
        """
        avail_date = self.get_dripped_avail_date(item_id, start_date)
        released = self.today() >= avail_date
        has_dripped_access = released and self.has_access(item_id)

        self.events.emit(
            "has_dripped_access",
            self,
            item_id=item_id,
            avail_date=avail_date,
            result=has_dripped_access
        )
        return has_dripped_access

    # Merging

    def merge_rule_values(self, src_rule: "Rule", src_is_base: bool):
        """Merge another rule of the same type into this one.

        From a base rule, every item the base protects and this rule does
        not mention is stored as an explicit no-access entry so it keeps
        shadowing the base default. From any other rule, missing items are
        copied over and local entries win.
        """
        if src_rule.rule_type != self.rule_type:
            return

        if not isinstance(self.rule_value, dict):
            self.rule_value = {}
        src_rule_value = src_rule.rule_value if isinstance(src_rule.rule_value, dict) else {}

        if src_is_base:
            missing = {
                item_id: access for item_id, access in src_rule_value.items()
                if item_id not in self.rule_value
            }
            for item_id, access in missing.items():
                if access:
                    self.rule_value[item_id] = RuleValue.NO_ACCESS
        else:
            for item_id, access in src_rule_value.items():
                self.rule_value.setdefault(item_id, access)

        self.logger.debug(
            "Rule values merged",
            membership_id=self.membership_id,
            src_membership_id=src_rule.membership_id,
            rule_type=self.rule_type_name,
            src_is_base=src_is_base
        )
        self.events.emit("merge_rule_values", self, src_rule=src_rule, src_is_base=src_is_base)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(membership_id={self.membership_id!r}, "
            f"rule_type={self.rule_type_name!r}, is_base_rule={self.is_base_rule})"
        )


def _coerce_rule_type(value: Any) -> Optional[RuleType]:
    try:
        return RuleType(value)
    except (ValueError, TypeError):
        return None


def _coerce_dripped_type(value: Any) -> Optional[DrippedType]:
    try:
        return DrippedType(value)
    except (ValueError, TypeError):
        return None


def _normalize_drip_field(field_name: str, value: Any) -> Any:
    if value is None:
        return None
    if field_name == DripField.PERIOD_UNIT.value:
        return validate_period_unit(value)
    if field_name == DripField.PERIOD_TYPE.value:
        return validate_period_type(value)
    if field_name in (DripField.SPEC_DATE.value, DripField.AVAIL_DATE.value):
        try:
            return to_date(value)
        except (TypeError, ValueError):
            return None
    return value
