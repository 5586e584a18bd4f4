"""In-memory MCP round trips against the FastMCP server."""

import pytest
from fastmcp import Client

from slack_broker.services.slack.tools import create_slack_mcp


@pytest.fixture()
def mcp(context):
    return create_slack_mcp(context)


async def test_tool_surface(mcp):
    async with Client(mcp) as client:
        tools = await client.list_tools()

    names = [t.name for t in tools]
    assert sorted(names) == sorted(
        ["get_slack_summary", "search_slack_messages", "list_slack_channels", "list_connected_teams"]
    )
    assert len(names) == len(set(names))
    summary = next(t for t in tools if t.name == "get_slack_summary")
    assert summary.inputSchema["required"] == ["team_id"]


async def test_list_connected_teams_over_mcp(mcp, store):
    store.upsert("T123", "xoxb-1", "Acme")

    async with Client(mcp) as client:
        result = await client.call_tool("list_connected_teams", {})

    text = result.content[0].text
    assert "Acme (ID: T123)" in text


async def test_errors_come_back_as_text(mcp):
    async with Client(mcp) as client:
        result = await client.call_tool("list_slack_channels", {"team_id": "T999"})

    assert result.content[0].text.startswith("Error: No Slack token found for team T999")
