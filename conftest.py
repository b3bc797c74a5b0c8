"""
Shared fixtures for the routing engine tests.
"""

from datetime import datetime, timedelta

import pytest

from virtual_model_routing.core import RoutingEngine
from virtual_model_routing.models import ClientRequest, SystemConfig, Target


class FakeClock:
    """Manually advanced clock for deterministic metrics."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_target(target_id: str, capabilities=None, **kwargs) -> Target:
    return Target(
        id=target_id,
        name=kwargs.pop("name", target_id.title()),
        provider=kwargs.pop("provider", "test"),
        capabilities=list(capabilities) if capabilities is not None else ["chat"],
        **kwargs,
    )


def chat_request(content: str = "hello", **kwargs) -> ClientRequest:
    return ClientRequest(
        method=kwargs.pop("method", "POST"),
        path=kwargs.pop("path", "/v1/chat/completions"),
        body=kwargs.pop("body", {"messages": [{"role": "user", "content": content}]}),
        **kwargs,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return SystemConfig()


@pytest.fixture
def engine(config):
    return RoutingEngine(config)
