import logging

from slack_broker.core.storage_manager import TokenStorageManager
from slack_broker.errors import CredentialNotFound

logger = logging.getLogger(__name__)


class TokenResolver:
    """Maps a workspace (team) id to its stored Slack access token."""

    def __init__(self, store: TokenStorageManager, auth_url: str):
        self.store = store
        self.auth_url = auth_url

    def resolve(self, workspace_id: str) -> str:
        credential = self.store.find(workspace_id)
        if credential is None:
            logger.info(f"No credential for team {workspace_id}")
            raise CredentialNotFound(workspace_id, self.auth_url)
        return credential.access_token
