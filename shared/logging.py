"""
Shared logging configuration for the membership protection layer.

Every module logs through ``get_logger(name)`` with key/value event data.
Calls made inside ``membership_context`` carry the membership and rule type
being evaluated, so rule-level events need not repeat them.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, List, Optional

import structlog
from opentelemetry import trace

membership_id_var: ContextVar[Optional[str]] = ContextVar("membership_id", default=None)
rule_type_var: ContextVar[Optional[str]] = ContextVar("rule_type", default=None)


def configure_logging(service_name: str, log_level: str = "info", json_output: bool = True) -> None:
    """Configure structlog over stdlib logging for a service."""
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_service_context(service_name),
        add_trace_context,
        add_membership_context,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def add_service_context(service_name: str):
    """Build a processor stamping events with the service name."""

    def processor(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def add_trace_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the active OpenTelemetry span ids, if any."""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        event_dict["trace_id"] = trace.format_trace_id(span_context.trace_id)
        event_dict["span_id"] = trace.format_span_id(span_context.span_id)
    return event_dict


def add_membership_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add the membership and rule type under evaluation."""
    membership_id = membership_id_var.get()
    if membership_id is not None:
        event_dict.setdefault("membership_id", membership_id)

    rule_type = rule_type_var.get()
    if rule_type is not None:
        event_dict.setdefault("rule_type", rule_type)

    return event_dict


@contextmanager
def membership_context(membership_id: Any, rule_type: Optional[Any] = None) -> Iterator[None]:
    """Bind a membership (and optionally a rule type) for the enclosed calls."""
    rule_type_name = getattr(rule_type, "value", rule_type)
    membership_token = membership_id_var.set(str(membership_id))
    rule_type_token = rule_type_var.set(str(rule_type_name) if rule_type_name is not None else None)
    try:
        yield
    finally:
        rule_type_var.reset(rule_type_token)
        membership_id_var.reset(membership_token)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
