"""Tests for the tool dispatcher boundary: routing and uniform error rendering."""

import pytest

from slack_broker.errors import TransportError, UpstreamAPIError
from slack_broker.services.slack.schemas.slack import ToolCall


def _text(result):
    assert len(result.content) == 1
    return result.content[0].text


@pytest.mark.parametrize(
    "tool_name, arguments",
    [
        ("get_slack_summary", {"team_id": "T999"}),
        ("search_slack_messages", {"team_id": "T999", "query": "deploy"}),
        ("list_slack_channels", {"team_id": "T999"}),
    ],
)
async def test_unknown_workspace_renders_credential_error(dispatcher, fake_api, tool_name, arguments):
    result = await dispatcher.dispatch(ToolCall(tool_name=tool_name, arguments=arguments))

    text = _text(result)
    assert text.startswith("Error: No Slack token found for team T999")
    assert "http://broker.test/auth/slack/login" in text
    assert fake_api.calls == []


async def test_list_connected_teams_on_empty_store(dispatcher):
    text = _text(await dispatcher.call("list_connected_teams"))

    assert text.startswith("Connected Slack workspaces (0):")
    assert "No Slack workspaces are connected yet" in text


async def test_reauthorization_round_trip(dispatcher, store):
    store.upsert("T123", "xoxb-1", "Acme")
    first = _text(await dispatcher.call("list_connected_teams"))

    store.upsert("T123", "xoxb-2", "Acme Corp")
    second = _text(await dispatcher.call("list_connected_teams"))

    assert "Acme" in first and "T123" in first
    assert second.startswith("Connected Slack workspaces (1):")
    assert "Acme Corp" in second
    assert second.count("T123") == 1


async def test_search_without_results_end_to_end(dispatcher, fake_api, connected):
    fake_api.responses["search.messages"] = {"ok": True, "messages": {"total": 0, "matches": []}}

    text = _text(await dispatcher.call("search_slack_messages", {"team_id": "T123", "query": "deploy"}))

    assert text == 'No messages found matching "deploy".'


async def test_unknown_tool(dispatcher):
    assert _text(await dispatcher.call("post_slack_message", {})) == "Error: Unknown tool: post_slack_message"


async def test_missing_required_argument(dispatcher):
    text = _text(await dispatcher.call("search_slack_messages", {"team_id": "T123"}))

    assert text.startswith("Error: Invalid arguments for search_slack_messages")
    assert "query" in text


async def test_upstream_error_carries_slack_code(dispatcher, fake_api, connected):
    fake_api.responses["conversations.list"] = UpstreamAPIError("missing_scope")

    text = _text(await dispatcher.call("list_slack_channels", {"team_id": "T123"}))

    assert text == "Error: Slack API error: missing_scope"


async def test_transport_error_is_generic(dispatcher, fake_api, connected):
    fake_api.responses["conversations.list"] = TransportError("conversations.list")

    text = _text(await dispatcher.call("list_slack_channels", {"team_id": "T123"}))

    assert text.startswith("Error: Could not reach the Slack API")


async def test_channel_not_found_is_rendered(dispatcher, fake_api, connected):
    fake_api.responses["conversations.list"] = {"ok": True, "channels": [{"id": "C1", "name": "general"}]}

    text = _text(await dispatcher.call("get_slack_summary", {"team_id": "T123", "channel": "nope"}))

    assert text == "Error: Channel 'nope' not found"


async def test_unexpected_exception_never_escapes(dispatcher, fake_api, connected):
    fake_api.responses["conversations.list"] = RuntimeError("boom")

    text = _text(await dispatcher.call("list_slack_channels", {"team_id": "T123"}))

    assert text == "Error: boom"


def test_each_tool_registered_once(dispatcher):
    assert dispatcher.tool_names == [
        "get_slack_summary",
        "search_slack_messages",
        "list_slack_channels",
        "list_connected_teams",
    ]


async def test_summary_survives_runtime_error_in_one_channel(dispatcher, fake_api, connected):
    fake_api.responses["conversations.list"] = {
        "ok": True,
        "channels": [
            {"id": "C00000001", "name": "general"},
            {"id": "C00000002", "name": "random"},
            {"id": "C00000003", "name": "eng"},
        ],
    }
    fake_api.history = {
        "C00000001": [{"ts": "1700000050.0", "user": "U1", "text": "general news"}],
        "C00000003": [{"ts": "1700000070.0", "user": "U1", "text": "eng update"}],
    }
    fake_api.history_errors["C00000002"] = RuntimeError("Session is closed")

    text = _text(await dispatcher.call("get_slack_summary", {"team_id": "T123"}))

    assert not text.startswith("Error")
    assert "general news" in text
    assert "eng update" in text
