import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastmcp import Context, FastMCP
from mcp.types import TextContent
from pydantic import Field
from typing_extensions import Annotated

from slack_broker.context import ServiceContext
from slack_broker.services.slack.aggregator import SlackAggregator
from slack_broker.services.slack.dispatcher import ToolDispatcher
from slack_broker.services.slack.route import register_routes

logger = logging.getLogger(__name__)


def register_tools(mcp: FastMCP, dispatcher: ToolDispatcher) -> None:
    """Expose the four read tools; each is registered exactly once."""

    @mcp.tool
    async def get_slack_summary(
        team_id: Annotated[str, Field(description="Slack team (workspace) ID, e.g. 'T01234567'")],
        channel: Annotated[
            Optional[str],
            Field(description="Channel ID (e.g. 'C1234567890') or name (e.g. 'general'); omit to sample recent public channels"),
        ] = None,
        hours: Annotated[Optional[float], Field(description="How many hours back to look (default 24)")] = None,
        limit: Annotated[Optional[int], Field(description="Maximum number of messages to fetch (default 100)")] = None,
        ctx: Context = None,
    ) -> list[TextContent]:
        """Summarize recent Slack messages for a connected workspace"""
        if ctx:
            await ctx.info(f"Summarizing Slack messages for team {team_id}")
        result = await dispatcher.call(
            "get_slack_summary",
            {"team_id": team_id, "channel": channel, "hours": hours, "limit": limit},
        )
        return result.content

    @mcp.tool
    async def search_slack_messages(
        team_id: Annotated[str, Field(description="Slack team (workspace) ID")],
        query: Annotated[str, Field(description="Search query; Slack modifiers such as 'in:#general' are supported")],
        count: Annotated[Optional[int], Field(description="Number of results to request (default 20)")] = None,
        ctx: Context = None,
    ) -> list[TextContent]:
        """Search messages across a connected Slack workspace"""
        if ctx:
            await ctx.info(f"Searching Slack team {team_id}")
        result = await dispatcher.call("search_slack_messages", {"team_id": team_id, "query": query, "count": count})
        return result.content

    @mcp.tool
    async def list_slack_channels(
        team_id: Annotated[str, Field(description="Slack team (workspace) ID")],
        ctx: Context = None,
    ) -> list[TextContent]:
        """List public and private channels of a connected Slack workspace"""
        if ctx:
            await ctx.info(f"Listing channels for team {team_id}")
        result = await dispatcher.call("list_slack_channels", {"team_id": team_id})
        return result.content

    @mcp.tool
    async def list_connected_teams(ctx: Context = None) -> list[TextContent]:
        """List the Slack workspaces that have been connected through OAuth"""
        result = await dispatcher.call("list_connected_teams")
        return result.content


def create_slack_mcp(context: ServiceContext, name: str = "Slack MCP Server") -> FastMCP:
    """Build the MCP server with tools and OAuth routes bound to ``context``."""

    @asynccontextmanager
    async def lifespan(server: FastMCP):
        try:
            yield context
        finally:
            await context.aclose()

    mcp = FastMCP(name, lifespan=lifespan)
    dispatcher = ToolDispatcher(SlackAggregator.from_context(context))
    register_tools(mcp, dispatcher)
    register_routes(mcp, context)
    logger.debug("Registered Slack tools: %s", ", ".join(dispatcher.tool_names))
    return mcp
