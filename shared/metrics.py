"""
Shared metrics configuration for the membership protection layer.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import Counter, Info, CollectorRegistry


class MetricsCollector:
    """Centralized metrics collector for services."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up rule engine metrics."""

        # Service info
        self._metrics["service_info"] = Info(
            "membership_service",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["rule_mutations_total"] = Counter(
            "rule_mutations_total",
            "Total rule state mutations",
            ["operation", "rule_type"],
            registry=self.registry
        )

        self._metrics["access_decisions_total"] = Counter(
            "access_decisions_total",
            "Total access decisions",
            ["rule_type", "result"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

    def record_mutation(self, operation: str, rule_type: Optional[str]):
        """Record a rule mutation."""
        with self._lock:
            self._metrics["rule_mutations_total"].labels(
                operation=operation,
                rule_type=rule_type or "unknown"
            ).inc()

    def record_access_decision(self, rule_type: Optional[str], allowed: bool):
        """Record an access decision."""
        with self._lock:
            self._metrics["access_decisions_total"].labels(
                rule_type=rule_type or "unknown",
                result="allowed" if allowed else "denied"
            ).inc()

    def record_error(self, error_type: str):
        """Record an error."""
        with self._lock:
            self._metrics["errors_total"].labels(
                error_type=error_type,
                service=self.service_name
            ).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
