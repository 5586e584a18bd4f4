from dataclasses import dataclass, field
from typing import List, Optional

from slack_broker.core.storage_manager import TokenStorageManager
from slack_broker.services.slack.api_client import SlackApiClient

DEFAULT_SCOPES = [
    "channels:read",
    "groups:read",
    "search:read",
    "users:read",
    "channels:history",
    "groups:history",
]


@dataclass
class BrokerSettings:
    """Settings the tools and OAuth routes need at runtime."""

    auth_base_url: str = "http://localhost:8000"
    slack_client_id: Optional[str] = None
    slack_client_secret: Optional[str] = None
    slack_redirect_uri: Optional[str] = None
    scopes: List[str] = field(default_factory=lambda: list(DEFAULT_SCOPES))

    @property
    def login_url(self) -> str:
        return f"{self.auth_base_url.rstrip('/')}/auth/slack/login"

    @property
    def redirect_uri(self) -> str:
        return self.slack_redirect_uri or f"{self.auth_base_url.rstrip('/')}/auth/slack/callback"


@dataclass
class ServiceContext:
    """Everything a request handler needs: the credential store, the Slack client, settings."""

    store: TokenStorageManager
    api_client: SlackApiClient
    settings: BrokerSettings = field(default_factory=BrokerSettings)

    async def aclose(self) -> None:
        await self.api_client.aclose()
