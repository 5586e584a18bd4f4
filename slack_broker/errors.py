"""Error taxonomy shared by the token broker and the aggregation layer."""


class SlackBrokerError(Exception):
    """Base class for every failure the tool dispatcher renders to the caller."""


class CredentialNotFound(SlackBrokerError):
    """No stored credential exists for the requested workspace."""

    def __init__(self, workspace_id: str, auth_url: str):
        self.workspace_id = workspace_id
        self.auth_url = auth_url
        super().__init__(
            f"No Slack token found for team {workspace_id}. "
            f"Authorize the workspace at {auth_url} and try again."
        )


class ChannelNotFound(SlackBrokerError):
    """A channel name did not match any channel in the workspace."""

    def __init__(self, channel: str):
        self.channel = channel
        super().__init__(f"Channel '{channel}' not found")


class UpstreamAPIError(SlackBrokerError):
    """Slack answered with ok=false (or an undecodable payload)."""

    def __init__(self, code: str, endpoint: str | None = None):
        self.code = code
        self.endpoint = endpoint
        super().__init__(f"Slack API error: {code}")


class TransportError(SlackBrokerError):
    """Network-level failure talking to Slack (timeout, DNS, reset)."""

    def __init__(self, endpoint: str | None = None):
        self.endpoint = endpoint
        super().__init__("Could not reach the Slack API. Please try again later.")
