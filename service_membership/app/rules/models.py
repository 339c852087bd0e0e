"""
Rule data models for the Membership service.
"""

from typing import Dict, Any, Optional, List
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


# Deliberately unmatchable item id; forces a listing query to return nothing.
SENTINEL_ID = -1


class RuleType(str, Enum):
    """Protectable content categories."""
    PAGE = "page"
    POST = "post"
    CATEGORY = "category"
    CPT_ITEM = "cpt_item"
    CPT_GROUP = "cpt_group"
    CONTENT = "content"
    MEDIA = "media"
    MENU = "menu"
    SHORTCODE = "shortcode"
    URL = "url"
    SPECIAL = "special"


class RuleValue:
    """Stored access flags."""
    NO_ACCESS = False
    HAS_ACCESS = True


class DrippedType(str, Enum):
    """Drip release policies."""
    SPEC_DATE = "specific_date"
    FROM_TODAY = "from_today"
    FROM_REGISTRATION = "from_registration"


class PeriodType(str, Enum):
    """Interval units, lowest first."""
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class DripField(str, Enum):
    """Per-item drip metadata fields."""
    PERIOD_UNIT = "period_unit"
    PERIOD_TYPE = "period_type"
    SPEC_DATE = "spec_date"
    AVAIL_DATE = "avail_date"


class RuleStatusFilter(str, Enum):
    """Protection status filters for content listings."""
    PROTECTED = "protected"
    NOT_PROTECTED = "not_protected"
    DRIPPED = "dripped"


@dataclass
class DrippedSchedule:
    """Drip metadata of a rule.

    ``items`` maps a dripped type to ``{item_id: {field: value}}``. Only the
    entries under ``dripped_type`` are consulted; entries kept under other
    types stay inert until that type is selected again.
    """
    dripped_type: Optional[DrippedType] = None
    modified: Optional[date] = None
    items: Dict[DrippedType, Dict[Any, Dict[str, Any]]] = field(default_factory=dict)

    def entries(self, dripped_type: DrippedType) -> Dict[Any, Dict[str, Any]]:
        """Get the per-item entries for a dripped type."""
        return self.items.get(dripped_type, {})

    def to_mapping(self) -> Dict[str, Any]:
        """Plain mapping form, as accepted by ``Rule.set_dripped``."""
        mapping: Dict[str, Any] = {
            "dripped_type": self.dripped_type.value if self.dripped_type else None,
            "modified": self.modified.isoformat() if self.modified else None,
        }
        for dripped_type, entries in self.items.items():
            mapping[dripped_type.value] = {
                item_id: {
                    name: value.isoformat() if isinstance(value, date) else getattr(value, "value", value)
                    for name, value in entry.items()
                }
                for item_id, entry in entries.items()
            }
        return mapping


class ExcludeInclude(BaseModel):
    """Item ids to include in or exclude from a content listing."""
    include: Optional[List[Any]] = Field(None, description="Only list these item ids")
    exclude: Optional[List[Any]] = Field(None, description="Never list these item ids")
