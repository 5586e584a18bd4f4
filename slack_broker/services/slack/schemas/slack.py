import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from mcp.types import TextContent
from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator

# Slack conversation ids: C (public), G (private/legacy group), D (direct message),
# followed by at least eight upper-case letters and digits, one of them a digit,
# e.g. "C01ABCDEF". All-caps names such as "GENERAL" are not ids.
CHANNEL_ID_PATTERN = re.compile(r"^[CGD](?=[A-Z]*[0-9])[A-Z0-9]{8,}$")


class WorkspaceCredential(BaseModel):
    """A connected workspace and the token used to call Slack on its behalf."""

    workspace_id: str
    access_token: str = Field(repr=False)
    workspace_name: str
    created_at: datetime


class SlackResponse(BaseModel):
    """Slack Web API envelope: ok flag, optional error code, raw payload."""

    ok: bool
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    warning: Optional[str] = None


class Channel(BaseModel):
    id: str
    name: str
    is_private: bool = False
    member_count: Optional[int] = Field(default=None, validation_alias=AliasChoices("num_members", "member_count"))
    topic: str = ""
    purpose: str = ""

    @field_validator("topic", "purpose", mode="before")
    @classmethod
    def _unwrap_value(cls, v: Any) -> Any:
        # conversations.list nests these as {"value": ..., "creator": ..., "last_set": ...}
        if isinstance(v, dict):
            v = v.get("value")
        return v or ""


class Message(BaseModel):
    timestamp: str = Field(validation_alias=AliasChoices("ts", "timestamp"))
    author_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("user", "author_id"))
    text: str = ""
    channel_id: Optional[str] = None
    channel_name: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _numeric_ts(cls, v: str) -> str:
        float(v)
        return v

    @field_validator("text", mode="before")
    @classmethod
    def _none_text(cls, v: Any) -> Any:
        return v or ""

    @property
    def sort_key(self) -> float:
        return float(self.timestamp)


class SearchMatch(BaseModel):
    timestamp: str = Field(validation_alias=AliasChoices("ts", "timestamp"))
    author_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("user", "author_id"))
    username: Optional[str] = None
    text: str = ""
    channel_id: Optional[str] = Field(default=None, validation_alias=AliasChoices(AliasPath("channel", "id"), "channel_id"))
    channel_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices(AliasPath("channel", "name"), "channel_name")
    )
    permalink: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _numeric_ts(cls, v: str) -> str:
        float(v)
        return v

    @field_validator("text", mode="before")
    @classmethod
    def _none_text(cls, v: Any) -> Any:
        return v or ""


class ChannelRef(BaseModel):
    """A channel argument, either a raw conversation id or a name to resolve.

    ``parse`` applies the id convention in ``CHANNEL_ID_PATTERN``; anything else
    is a name (a leading ``#`` is dropped).
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["id", "name"]
    value: str

    @classmethod
    def from_id(cls, value: str) -> "ChannelRef":
        return cls(kind="id", value=value)

    @classmethod
    def from_name(cls, value: str) -> "ChannelRef":
        return cls(kind="name", value=value)

    @classmethod
    def parse(cls, raw: str) -> "ChannelRef":
        raw = raw.strip()
        if CHANNEL_ID_PATTERN.match(raw):
            return cls.from_id(raw)
        return cls.from_name(raw.lstrip("#"))

    @property
    def is_id(self) -> bool:
        return self.kind == "id"


class ToolCall(BaseModel):
    """
    Represents a tool invocation coming from the MCP client.
    """
    tool_name: str = Field(..., description="The name of the tool to call.")
    arguments: Dict[str, Any] = Field(default_factory=dict, description="The arguments for the tool call.")


class ToolResult(BaseModel):
    """Uniform tool response: ordered text blocks, errors included."""

    content: List[TextContent] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> "ToolResult":
        return cls(content=[TextContent(type="text", text=text)])

    @classmethod
    def from_error(cls, message: str) -> "ToolResult":
        return cls.from_text(f"Error: {message}")

    @property
    def text(self) -> str:
        return "\n".join(block.text for block in self.content)
