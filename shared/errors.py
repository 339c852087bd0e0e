"""
Shared error handling for the membership protection layer.

Steady-state rule operations never raise; these errors cover
misconfiguration (unknown rule types) and collaborator lookups.
"""

from typing import Dict, Any, Optional

from opentelemetry import trace
from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


def current_trace_id() -> Optional[str]:
    """Hex trace id of the active span, if there is one."""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return trace.format_trace_id(span_context.trace_id)


class MembershipLayerException(Exception):
    """Base exception for the membership protection layer."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            trace_id=current_trace_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )

    def to_log_fields(self) -> Dict[str, Any]:
        """Key/value fields for structured log events."""
        return {"code": self.code, "error": self.message, **self.details}


class ValidationError(MembershipLayerException):
    """Invalid input to a membership operation."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class UnknownRuleTypeError(MembershipLayerException):
    """A rule class or rule type the factory cannot build."""

    def __init__(self, rule_type: Any, message: str = "Unknown rule type", details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("rule_type", str(getattr(rule_type, "value", rule_type)))
        self.rule_type = rule_type
        super().__init__("UNKNOWN_RULE_TYPE", f"{message}: {details['rule_type']}", details)


class MembershipNotFoundError(MembershipLayerException):
    """Membership lookup failures."""

    def __init__(self, membership_id: Any, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details.setdefault("membership_id", membership_id)
        self.membership_id = membership_id
        super().__init__("MEMBERSHIP_NOT_FOUND", f"Membership not found: {membership_id}", details)
