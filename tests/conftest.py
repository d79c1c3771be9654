"""Test configuration and fixtures."""

import os
from unittest.mock import AsyncMock

import pytest

# Set test environment variables BEFORE importing the package
os.environ["ENVIRONMENT"] = "test"

from linear_rpc.connectors.lookup import LinearRemoteLookup
from linear_rpc.resolution.cache import ResolverCache
from linear_rpc.resolution.resolver import IdentifierResolver


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Fresh resolver cache with a 5 minute TTL driven by the fake clock."""
    return ResolverCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def lookup():
    """RemoteLookup double; every method is an AsyncMock returning 'nothing found'."""
    mock = AsyncMock(spec=LinearRemoteLookup)
    mock.find_team_by_key.return_value = None
    mock.find_projects_by_name_and_team.return_value = []
    mock.find_user_by_email.return_value = None
    mock.fetch_team_states.return_value = []
    mock.fetch_team_labels.return_value = []
    mock.find_issue_by_team_and_number.return_value = None
    return mock


@pytest.fixture
def resolver(lookup, cache):
    return IdentifierResolver(lookup, cache)


def _count_remote_calls(lookup) -> int:
    return sum(
        getattr(lookup, name).await_count
        for name in (
            "find_team_by_key",
            "find_projects_by_name_and_team",
            "find_user_by_email",
            "fetch_team_states",
            "fetch_team_labels",
            "find_issue_by_team_and_number",
        )
    )


@pytest.fixture
def remote_calls(lookup):
    """Callable returning the total awaited calls across every lookup method."""
    return lambda: _count_remote_calls(lookup)
