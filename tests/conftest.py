"""Shared test fixtures."""

from datetime import timezone
from typing import Any, Dict, List, Optional

import pytest

from slack_broker.context import BrokerSettings, ServiceContext
from slack_broker.core.storage_manager import TokenStorageManager
from slack_broker.services.slack.aggregator import SlackAggregator
from slack_broker.services.slack.dispatcher import ToolDispatcher
from slack_broker.utils.database import build_engine, build_session_factory, init_db

NOW = 1_700_000_000.0
AUTH_BASE_URL = "http://broker.test"


class FakeSlackApi:
    """Stands in for SlackApiClient: canned payloads per endpoint, history per channel.

    A value in ``responses`` may be a payload dict, a callable taking the params,
    or an exception to raise. ``history_errors`` maps channel ids to exceptions.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.responses: Dict[str, Any] = {}
        self.history: Dict[str, List[dict]] = {}
        self.history_errors: Dict[str, Exception] = {}
        self.closed = False

    async def call(self, endpoint: str, token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = {k: v for k, v in (params or {}).items() if v is not None}
        self.calls.append((endpoint, token, params))
        if endpoint == "conversations.history":
            channel = params["channel"]
            if channel in self.history_errors:
                raise self.history_errors[channel]
            return {"ok": True, "messages": self.history.get(channel, [])}
        result = self.responses[endpoint]
        if isinstance(result, Exception):
            raise result
        if callable(result):
            return result(params)
        return result

    def calls_to(self, endpoint: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == endpoint]

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def store():
    """TokenStorageManager over an in-memory SQLite database."""
    engine = build_engine("sqlite://")
    init_db(engine)
    yield TokenStorageManager(build_session_factory(engine))
    engine.dispose()


@pytest.fixture()
def fake_api() -> FakeSlackApi:
    return FakeSlackApi()


@pytest.fixture()
def settings() -> BrokerSettings:
    return BrokerSettings(
        auth_base_url=AUTH_BASE_URL,
        slack_client_id="123.456",
        slack_client_secret="shh",
    )


@pytest.fixture()
def context(store, fake_api, settings) -> ServiceContext:
    return ServiceContext(store=store, api_client=fake_api, settings=settings)


@pytest.fixture()
def aggregator(context) -> SlackAggregator:
    return SlackAggregator.from_context(context, clock=lambda: NOW, tz=timezone.utc)


@pytest.fixture()
def dispatcher(aggregator) -> ToolDispatcher:
    return ToolDispatcher(aggregator)


@pytest.fixture()
def connected(store):
    """A connected workspace T123 with a user token."""
    return store.upsert("T123", "xoxp-acme", "Acme")


@pytest.fixture()
def now() -> float:
    return NOW
