"""Plain-text rendering of Slack records for MCP tool results.

Every function here is pure: output depends only on the records passed in and
the optional ``tz`` (process local time when omitted). Times use the locale's
representation (``%X``, ``%x``).
"""

from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Sequence

from slack_broker.services.slack.schemas.slack import Channel, Message, SearchMatch, WorkspaceCredential

ELLIPSIS = "..."
SUMMARY_TEXT_LIMIT = 100
SEARCH_TEXT_LIMIT = 150
MESSAGES_PER_CHANNEL = 10
SEARCH_RESULTS_SHOWN = 10


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _hours_label(hours: float) -> str:
    return f"{hours:g} hour" if hours == 1 else f"{hours:g} hours"


def _from_ts(ts: str, tz: Optional[tzinfo]) -> datetime:
    return datetime.fromtimestamp(float(ts), tz=tz)


def format_time(ts: str, tz: Optional[tzinfo] = None) -> str:
    return _from_ts(ts, tz).strftime("%X")


def format_datetime(ts: str, tz: Optional[tzinfo] = None) -> str:
    return _from_ts(ts, tz).strftime("%x %X")


def format_date(value: datetime, tz: Optional[tzinfo] = None) -> str:
    if value.tzinfo is not None:
        # tz=None converts to local time
        value = value.astimezone(tz)
    return value.strftime("%x")


def format_message_line(message: Message, tz: Optional[tzinfo] = None) -> str:
    author = message.author_id or "Unknown"
    return f"[{format_time(message.timestamp, tz)}] {author}: {truncate(message.text, SUMMARY_TEXT_LIMIT)}"


def _channel_label(message: Message) -> str:
    return message.channel_name or message.channel_id or "unknown"


def _channel_block(messages: List[Message], tz: Optional[tzinfo]) -> List[str]:
    lines = [format_message_line(m, tz) for m in messages[:MESSAGES_PER_CHANNEL]]
    hidden = len(messages) - MESSAGES_PER_CHANNEL
    if hidden > 0:
        lines.append(f"...and {hidden} more")
    return lines


def format_summary(
    messages: Sequence[Message],
    hours: float,
    channel_name: Optional[str] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    """Render merged channel history.

    ``messages`` is expected newest first. Messages with blank text are
    skipped. Output is grouped per channel only when more than one channel
    contributed; each block shows at most ten messages.
    """
    visible = [m for m in messages if m.text.strip()]
    if not visible:
        where = f" in #{channel_name}" if channel_name else ""
        return f"No messages found{where} in the last {_hours_label(hours)}."

    # dicts keep insertion order: the channel with the newest message comes first
    groups: Dict[str, List[Message]] = {}
    for message in visible:
        groups.setdefault(_channel_label(message), []).append(message)

    if len(groups) == 1:
        name = channel_name or next(iter(groups))
        lines = [
            f"Slack summary for #{name}: {_plural(len(visible), 'message')} in the last {_hours_label(hours)}",
            "",
        ]
        lines.extend(_channel_block(visible, tz))
        return "\n".join(lines)

    lines = [
        f"Slack summary: {_plural(len(visible), 'message')} from {len(groups)} channels "
        f"in the last {_hours_label(hours)}"
    ]
    for name, group in groups.items():
        lines.append("")
        lines.append(f"#{name} ({_plural(len(group), 'message')})")
        lines.extend(_channel_block(group, tz))
    return "\n".join(lines)


def format_search_results(
    query: str,
    matches: Sequence[SearchMatch],
    total: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    if not matches:
        return f'No messages found matching "{query}".'

    shown = list(matches)[:SEARCH_RESULTS_SHOWN]
    total = total if total is not None else len(matches)
    header = f'Found {_plural(total, "result")} for "{query}"'
    if total > len(shown):
        header += f" (showing {len(shown)})"
    lines = [header + ":", ""]
    for index, match in enumerate(shown, start=1):
        channel = f"#{match.channel_name}" if match.channel_name else (match.channel_id or "unknown channel")
        author = match.author_id or match.username or "Unknown"
        lines.append(f"{index}. {channel} | {author} | {format_datetime(match.timestamp, tz)}")
        lines.append(f"   {truncate(match.text, SEARCH_TEXT_LIMIT)}")
    return "\n".join(lines)


def format_channel_line(channel: Channel) -> str:
    marker = "🔒 " if channel.is_private else "#"
    parts = [f"{marker}{channel.name} ({channel.id})"]
    if channel.member_count:
        parts.append(_plural(channel.member_count, "member"))
    if channel.topic:
        parts.append(f"Topic: {channel.topic}")
    return "• " + " | ".join(parts)


def format_channel_list(channels: Sequence[Channel]) -> str:
    if not channels:
        return "No channels found."
    lines = [f"Found {_plural(len(channels), 'channel')}:", ""]
    lines.extend(format_channel_line(c) for c in channels)
    return "\n".join(lines)


def format_workspace_list(
    credentials: Sequence[WorkspaceCredential],
    auth_url: str,
    tz: Optional[tzinfo] = None,
) -> str:
    header = f"Connected Slack workspaces ({len(credentials)}):"
    if not credentials:
        return f"{header}\n\nNo Slack workspaces are connected yet. Authorize one at {auth_url}"
    lines = [header, ""]
    for credential in credentials:
        lines.append(
            f"• {credential.workspace_name} (ID: {credential.workspace_id}) "
            f"- connected {format_date(credential.created_at, tz)}"
        )
    return "\n".join(lines)
