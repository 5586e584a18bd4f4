"""Tests for the OAuth and workspace-listing HTTP routes."""

from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
from starlette.testclient import TestClient

from slack_broker.services.slack.route import OAuthExchangeError
from slack_broker.services.slack.tools import create_slack_mcp


@pytest.fixture()
def http(context):
    return TestClient(create_slack_mcp(context).http_app())


def test_index_lists_endpoints(http):
    body = http.get("/").json()

    assert body["status"] == "OK"
    assert body["endpoints"]["login"] == "/auth/slack/login"


def test_login_redirects_to_slack(http):
    response = http.get("/auth/slack/login", follow_redirects=False)

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    query = parse_qs(location.query)
    assert location.netloc == "slack.com"
    assert query["client_id"] == ["123.456"]
    assert "search:read" in query["scope"][0].split(",")
    assert query["redirect_uri"] == ["http://broker.test/auth/slack/callback"]


def test_login_without_client_id(context):
    context.settings.slack_client_id = None
    http = TestClient(create_slack_mcp(context).http_app())

    assert http.get("/auth/slack/login", follow_redirects=False).status_code == 500


def test_callback_rejects_oauth_error(http):
    response = http.get("/auth/slack/callback", params={"error": "access_denied"})

    assert response.status_code == 400
    assert "access_denied" in response.text


def test_callback_requires_code(http):
    assert http.get("/auth/slack/callback").status_code == 400


def test_callback_stores_workspace(http, store):
    token_response = {"ok": True, "access_token": "xoxb-new", "team": {"id": "T777", "name": "Globex"}}
    with patch("slack_broker.services.slack.route.exchange_code", new=AsyncMock(return_value=token_response)):
        response = http.get("/auth/slack/callback", params={"code": "abc"})

    assert response.status_code == 200
    assert "Globex" in response.text
    assert store.find("T777").access_token == "xoxb-new"


def test_callback_reports_failed_exchange(http, store):
    failure = AsyncMock(side_effect=OAuthExchangeError("Slack OAuth error: invalid_code"))
    with patch("slack_broker.services.slack.route.exchange_code", new=failure):
        response = http.get("/auth/slack/callback", params={"code": "bad"})

    assert response.status_code == 500
    assert "invalid_code" in response.text
    assert store.list_all() == []


def test_teams_lists_workspaces_without_tokens(http, store):
    store.upsert("T123", "xoxb-secret", "Acme")

    body = http.get("/teams").json()

    assert body["teams"][0]["team_id"] == "T123"
    assert body["teams"][0]["team_name"] == "Acme"
    assert "xoxb-secret" not in str(body)


def test_callback_reports_undecodable_response(http, store):
    with patch("slack_broker.services.slack.route.exchange_code", new=AsyncMock(side_effect=ValueError("bad json"))):
        response = http.get("/auth/slack/callback", params={"code": "abc"})

    assert response.status_code == 500
    assert "Error: bad json" in response.text
    assert store.list_all() == []


def test_callback_reports_bad_encryption_keys(http, store):
    token_response = {"ok": True, "access_token": "xoxb-new", "team": {"id": "T777", "name": "Globex"}}
    store._encryption_keys = ["not-a-fernet-key"]
    with patch("slack_broker.services.slack.route.exchange_code", new=AsyncMock(return_value=token_response)):
        response = http.get("/auth/slack/callback", params={"code": "abc"})

    assert response.status_code == 500
    assert response.text.startswith("Error: ")
