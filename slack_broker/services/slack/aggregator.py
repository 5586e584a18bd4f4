"""
Aggregation layer behind the Slack MCP tools.

Each operation resolves the workspace token first (an unknown workspace
aborts before any Slack call), fans out to the Slack Web API, and hands the
decoded records to the formatter.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Callable, Iterable, List, Optional

from slack_broker.context import ServiceContext
from slack_broker.core.storage_manager import TokenStorageManager
from slack_broker.errors import ChannelNotFound, TransportError, UpstreamAPIError
from slack_broker.services.slack import formatter
from slack_broker.services.slack.api_client import SlackApiClient, decode_records, payload_path
from slack_broker.services.slack.schemas.slack import Channel, ChannelRef, Message, SearchMatch
from slack_broker.services.slack.token_resolver import TokenResolver

logger = logging.getLogger(__name__)

DEFAULT_HOURS = 24
DEFAULT_LIMIT = 100
DEFAULT_SEARCH_COUNT = 20

# Channel auto-selection when no channel is given: first page of 5, keep 3
AUTO_CHANNEL_PAGE_SIZE = 5
AUTO_CHANNEL_COUNT = 3
CHANNEL_LIST_LIMIT = 100
NAME_LOOKUP_PAGE_SIZE = 200

ALL_CHANNEL_TYPES = "public_channel,private_channel"


@dataclass(frozen=True)
class ChannelTarget:
    id: str
    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass
class ChannelFetch:
    """Outcome of one channel's history fetch: messages, or the reason it failed."""

    target: ChannelTarget
    messages: List[Message] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def merge_fetches(fetches: Iterable[ChannelFetch]) -> List[Message]:
    """Combine successful fetches, newest first by numeric timestamp."""
    merged: List[Message] = []
    for fetch in fetches:
        if fetch.ok:
            merged.extend(fetch.messages)
    return sorted(merged, key=lambda m: m.sort_key, reverse=True)


class SlackAggregator:
    def __init__(
        self,
        resolver: TokenResolver,
        api: SlackApiClient,
        store: TokenStorageManager,
        auth_url: str,
        clock: Callable[[], float] = time.time,
        tz: Optional[tzinfo] = None,
    ):
        self.resolver = resolver
        self.api = api
        self.store = store
        self.auth_url = auth_url
        self.clock = clock
        self.tz = tz

    @classmethod
    def from_context(cls, ctx: ServiceContext, **kwargs) -> "SlackAggregator":
        auth_url = ctx.settings.login_url
        return cls(
            resolver=TokenResolver(ctx.store, auth_url),
            api=ctx.api_client,
            store=ctx.store,
            auth_url=auth_url,
            **kwargs,
        )

    # ==================== CHANNELS ====================

    async def _list_channels(self, token: str, types: str, limit: int, cursor: Optional[str] = None):
        data = await self.api.call(
            "conversations.list",
            token,
            {"types": types, "limit": limit, "cursor": cursor},
        )
        channels = decode_records(Channel, data.get("channels"), "conversations.list")
        next_cursor = (data.get("response_metadata") or {}).get("next_cursor") or None
        return channels, next_cursor

    async def _default_channels(self, token: str) -> List[ChannelTarget]:
        channels, _ = await self._list_channels(token, "public_channel", AUTO_CHANNEL_PAGE_SIZE)
        return [ChannelTarget(c.id, c.name) for c in channels[:AUTO_CHANNEL_COUNT]]

    async def _find_channel_by_name(self, token: str, name: str) -> ChannelTarget:
        wanted = name.lower()
        cursor = None
        while True:
            channels, cursor = await self._list_channels(token, ALL_CHANNEL_TYPES, NAME_LOOKUP_PAGE_SIZE, cursor)
            for channel in channels:
                if channel.name.lower() == wanted:
                    return ChannelTarget(channel.id, channel.name)
            if not cursor:
                raise ChannelNotFound(name)

    async def resolve_channel(self, token: str, ref: ChannelRef) -> ChannelTarget:
        if ref.is_id:
            return ChannelTarget(ref.value)
        return await self._find_channel_by_name(token, ref.value)

    # ==================== HISTORY ====================

    async def _fetch_history(self, token: str, target: ChannelTarget, oldest: int, limit: int) -> List[Message]:
        data = await self.api.call(
            "conversations.history",
            token,
            {"channel": target.id, "oldest": oldest, "limit": limit},
        )
        messages = decode_records(Message, data.get("messages"), "conversations.history")
        return [m.model_copy(update={"channel_id": target.id, "channel_name": target.name}) for m in messages]

    async def _fetch_tolerant(self, token: str, target: ChannelTarget, oldest: int, limit: int) -> ChannelFetch:
        try:
            messages = await self._fetch_history(token, target, oldest, limit)
        except (UpstreamAPIError, TransportError) as e:
            logger.warning(f"Skipping #{target.label} in summary: {e}")
            return ChannelFetch(target, error=str(e))
        except Exception as e:
            logger.exception(f"Unexpected error fetching #{target.label} for summary")
            return ChannelFetch(target, error=str(e) or e.__class__.__name__)
        return ChannelFetch(target, messages)

    # ==================== OPERATIONS ====================

    async def summarize(
        self,
        workspace_id: str,
        channel: Optional[str] = None,
        hours: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> str:
        """Recent messages from one channel, or from the first few public channels."""
        hours = hours or DEFAULT_HOURS
        limit = limit or DEFAULT_LIMIT
        token = self.resolver.resolve(workspace_id)
        oldest = int(self.clock() - hours * 3600)

        if channel:
            # An explicitly requested channel propagates its errors
            target = await self.resolve_channel(token, ChannelRef.parse(channel))
            fetches = [ChannelFetch(target, await self._fetch_history(token, target, oldest, limit))]
            label = target.label
        else:
            targets = await self._default_channels(token)
            # Per-channel share of the limit, at least one message each
            per_channel = max(1, limit // len(targets)) if targets else 0
            fetches = await asyncio.gather(
                *(self._fetch_tolerant(token, target, oldest, per_channel) for target in targets)
            )
            failed = [f.target.label for f in fetches if not f.ok]
            if failed:
                logger.info(f"Summary for {workspace_id} skipped {len(failed)} channel(s): {', '.join(failed)}")
            label = None

        return formatter.format_summary(merge_fetches(fetches), hours, channel_name=label, tz=self.tz)

    async def search(self, workspace_id: str, query: str, count: Optional[int] = None) -> str:
        count = count or DEFAULT_SEARCH_COUNT
        token = self.resolver.resolve(workspace_id)
        data = await self.api.call(
            "search.messages",
            token,
            {"query": query, "count": count, "sort": "timestamp", "sort_dir": "desc"},
        )
        matches = decode_records(SearchMatch, payload_path(data, "messages", "matches"), "search.messages")
        total = payload_path(data, "messages", "total")
        return formatter.format_search_results(
            query, matches, total=total if isinstance(total, int) else None, tz=self.tz
        )

    async def list_channels(self, workspace_id: str) -> str:
        token = self.resolver.resolve(workspace_id)
        channels, _ = await self._list_channels(token, ALL_CHANNEL_TYPES, CHANNEL_LIST_LIMIT)
        return formatter.format_channel_list(channels)

    async def list_workspaces(self) -> str:
        return formatter.format_workspace_list(self.store.list_all(), self.auth_url, tz=self.tz)
