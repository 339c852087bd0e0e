"""
Shared fixtures for Membership service tests.
"""

from datetime import date

import pytest

from service_membership.app.memberships.directory import MembershipDirectory
from service_membership.app.memberships.repository import InMemoryMembershipRepository
from service_membership.app.rules.events import RuleEventDispatcher
from service_membership.app.rules.models import RuleType
from service_membership.app.rules.period import FixedClock
from service_membership.app.rules.registry import default_registry
from service_membership.app.rules.rule import Rule


class RecordingListener:
    """Collects every rule event it is notified of."""

    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    def operations(self):
        return [event.operation for event in self.events]


@pytest.fixture
def clock():
    """Clock frozen on 2024-01-01."""
    return FixedClock(date(2024, 1, 1))


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def events(listener):
    return RuleEventDispatcher([listener])


@pytest.fixture
def rule(events, clock):
    """Page rule of an ordinary membership."""
    return Rule(10, is_base_rule=False, rule_type=RuleType.PAGE, events=events, clock=clock)


@pytest.fixture
def base_rule(events, clock):
    """Page rule of the base membership."""
    return Rule(1, is_base_rule=True, rule_type=RuleType.PAGE, events=events, clock=clock)


@pytest.fixture
def registry(events, clock):
    return default_registry(events=events, clock=clock)


@pytest.fixture
def repository(registry):
    return InMemoryMembershipRepository(registry=registry)


@pytest.fixture
def directory(repository):
    return MembershipDirectory(repository)
