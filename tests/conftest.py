"""Shared pytest fixtures for taskdeck tests."""

from typing import Any, Callable

import httpx
import pytest

from taskdeck.services.api_client import ConsoleApiClient

from helpers import FakeEventSource, FakeService


@pytest.fixture
def make_client():
    """Build a ConsoleApiClient whose requests are answered by ``handler``."""
    def factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> ConsoleApiClient:
        return ConsoleApiClient("http://deck.test", transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.fixture
def fake_source():
    return FakeEventSource()


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def streams():
    """The state stream plus every log stream the session opens, in order."""
    return {"state": FakeEventSource("/api/events/stream"), "logs": []}


@pytest.fixture
def session(make_client, service, streams):
    from taskdeck.config.settings import ConsoleSettings
    from taskdeck.services.console_session import ConsoleSession

    client = make_client(service)
    client.state_events = lambda: streams["state"]

    def log_events(task_id, run_id):
        source = FakeEventSource(f"/api/tasks/{task_id}/logs/stream?runId={run_id}")
        streams["logs"].append(source)
        return source

    client.log_events = log_events
    return ConsoleSession(ConsoleSettings(poll_interval_seconds=60), client=client)
