"""
Membership protection layer wiring.

Builds the rule registry, membership storage, directory and filter deriver
from configuration, with logging and metrics attached to every rule.
"""

from typing import Any, Mapping, Optional

from prometheus_client import CollectorRegistry

from shared.config import ServiceConfig, get_config
from shared.errors import MembershipLayerException
from shared.logging import configure_logging, get_logger, membership_context
from shared.metrics import MetricsCollector, get_metrics_collector

from .memberships.directory import MembershipDirectory
from .memberships.model import Membership
from .memberships.repository import InMemoryMembershipRepository
from .reporting.access_report import AccessCount, ContentProvider, count_item_access
from .rules.events import LoggingRuleListener, MetricsRuleListener, RuleEventDispatcher
from .rules.filters import FilterSetDeriver
from .rules.models import RuleType
from .rules.period import SystemClock
from .rules.query_args import QueryDialect, prepare_query_args
from .rules.registry import default_registry
from .rules.rule import Rule


class MembershipService:
    """Membership protection layer with its collaborators wired together."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        clock: Optional[Any] = None,
        metrics_registry: Optional[CollectorRegistry] = None,
        repository: Optional[Any] = None
    ):
        self.config = config or get_config()
        self.service_name = self.config.service_name

        # Configure logging
        configure_logging(self.service_name, self.config.log_level, json_output=self.config.env != "local")
        self.logger = get_logger(f"{self.service_name}.service")

        self.clock = clock or SystemClock(self.config.simulate_date)
        if self.config.simulate_date is not None:
            self.logger.info("Simulating date", simulate_date=self.config.simulate_date.isoformat())

        self.events = RuleEventDispatcher([LoggingRuleListener()])
        self.metrics: Optional[MetricsCollector] = None
        if self.config.enable_metrics:
            self.metrics = get_metrics_collector(self.service_name, metrics_registry)
            self.events.subscribe(MetricsRuleListener(self.metrics))

        self.registry = default_registry(events=self.events, clock=self.clock)
        self.repository = repository or InMemoryMembershipRepository(registry=self.registry)
        self.directory = MembershipDirectory(self.repository)
        self.filters = FilterSetDeriver(self.directory)

    def load_membership(self, membership_id: Any) -> Membership:
        """Get a membership through the directory cache."""
        try:
            return self.directory.load(membership_id)
        except MembershipLayerException as e:
            self._record_error(e)
            raise

    def get_rule(self, membership_id: Any, rule_type: RuleType) -> Rule:
        """Get a membership's rule of the given type."""
        return self.load_membership(membership_id).get_rule(rule_type)

    def has_access(self, membership_id: Any, rule_type: RuleType, item_id: Any) -> bool:
        """Check item access for a membership, with the base rule merged in.

        The merge happens on a scratch rule so the stored rule keeps only
        its own entries.
        """
        with membership_context(membership_id, rule_type):
            membership = self.load_membership(membership_id)
            rule = membership.get_rule(rule_type)
            if membership.is_base():
                return rule.has_access(item_id)

            effective = self.registry.create(rule_type, membership)
            effective.merge_rule_values(rule, False)
            effective.merge_rule_values(self.directory.get_base().get_rule(rule_type), True)
            return effective.has_access(item_id)

    def query_args(
        self,
        membership_id: Any,
        rule_type: RuleType,
        args: Optional[Mapping[str, Any]] = None,
        args_type: QueryDialect = QueryDialect.WP_QUERY
    ):
        """Build content query arguments restricted by a membership's rule."""
        with membership_context(membership_id, rule_type):
            rule = self.get_rule(membership_id, rule_type)
            return prepare_query_args(self.filters, rule, args, args_type)

    def count_item_access(
        self,
        membership_id: Any,
        rule_type: RuleType,
        provider: ContentProvider,
        args: Optional[Mapping[str, Any]] = None
    ) -> AccessCount:
        """Summarise content access for a membership's rule."""
        with membership_context(membership_id, rule_type):
            rule = self.get_rule(membership_id, rule_type)
            return count_item_access(rule, provider, args)

    def _record_error(self, error: MembershipLayerException):
        self.logger.warning("Membership operation failed", **error.to_log_fields())
        if self.metrics is not None:
            self.metrics.record_error(error.code)


def create_service(config: Optional[ServiceConfig] = None, **kwargs: Any) -> MembershipService:
    """Create the membership service from configuration."""
    return MembershipService(config=config, **kwargs)
