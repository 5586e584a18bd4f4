import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from slack_broker.errors import SlackBrokerError
from slack_broker.services.slack.aggregator import SlackAggregator
from slack_broker.services.slack.schemas.slack import ToolCall, ToolResult

logger = logging.getLogger(__name__)


class _ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")


class SummaryArgs(_ToolArgs):
    team_id: str
    channel: Optional[str] = None
    hours: Optional[float] = None
    limit: Optional[int] = None


class SearchArgs(_ToolArgs):
    team_id: str
    query: str
    count: Optional[int] = None


class TeamArgs(_ToolArgs):
    team_id: str


class NoArgs(_ToolArgs):
    pass


class UnknownTool(SlackBrokerError):
    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


def _describe_validation_error(tool_name: str, error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        where = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        problems.append(f"{where}: {item.get('msg')}")
    return f"Invalid arguments for {tool_name}: {'; '.join(problems)}"


class ToolDispatcher:
    """Routes tool invocations to the aggregator and never raises.

    Any failure is rendered as a single ``Error: ...`` text block.
    """

    def __init__(self, aggregator: SlackAggregator):
        self.aggregator = aggregator
        self._routes: Dict[str, tuple[Type[_ToolArgs], Callable[[Any], Awaitable[str]]]] = {
            "get_slack_summary": (SummaryArgs, self._summary),
            "search_slack_messages": (SearchArgs, self._search),
            "list_slack_channels": (TeamArgs, self._channels),
            "list_connected_teams": (NoArgs, self._teams),
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._routes)

    async def _summary(self, args: SummaryArgs) -> str:
        return await self.aggregator.summarize(args.team_id, args.channel, args.hours, args.limit)

    async def _search(self, args: SearchArgs) -> str:
        return await self.aggregator.search(args.team_id, args.query, args.count)

    async def _channels(self, args: TeamArgs) -> str:
        return await self.aggregator.list_channels(args.team_id)

    async def _teams(self, args: NoArgs) -> str:
        return await self.aggregator.list_workspaces()

    async def dispatch(self, call: ToolCall) -> ToolResult:
        try:
            route = self._routes.get(call.tool_name)
            if route is None:
                raise UnknownTool(call.tool_name)
            args_model, handler = route
            try:
                args = args_model.model_validate(call.arguments)
            except ValidationError as e:
                return ToolResult.from_error(_describe_validation_error(call.tool_name, e))
            return ToolResult.from_text(await handler(args))
        except SlackBrokerError as e:
            logger.warning(f"{call.tool_name} failed: {e}")
            return ToolResult.from_error(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error in {call.tool_name}")
            return ToolResult.from_error(str(e) or e.__class__.__name__)

    async def call(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        return await self.dispatch(ToolCall(tool_name=tool_name, arguments=arguments or {}))
