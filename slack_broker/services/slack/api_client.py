"""
Slack Web API client using the official Slack SDK.

One authenticated GET per call, no retries, no caching. Errors are translated
into the broker's taxonomy: ``UpstreamAPIError`` when Slack answers with
``ok: false``, ``TransportError`` when the request never got an answer.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError
from slack_sdk.errors import SlackApiError, SlackClientError
from slack_sdk.web.async_client import AsyncWebClient

from slack_broker.errors import TransportError, UpstreamAPIError
from slack_broker.services.slack.schemas.slack import SlackResponse

logger = logging.getLogger(__name__)

SLACK_API_BASE = "https://slack.com/api/"
DEFAULT_TIMEOUT = 30

RecordT = TypeVar("RecordT", bound=BaseModel)


def build_query(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Drop None entries and spell booleans the way Slack expects."""
    query = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        query[key] = value
    return query


def decode_records(model: Type[RecordT], records: Any, endpoint: str) -> List[RecordT]:
    """Validate a list of raw payload records into ``model`` instances."""
    if records is None:
        return []
    if not isinstance(records, list):
        logger.error(f"Unexpected payload shape from {endpoint}: {type(records).__name__}")
        raise UpstreamAPIError("invalid_response", endpoint)
    try:
        return [model.model_validate(record) for record in records]
    except ValidationError as e:
        logger.error(f"Could not decode {model.__name__} records from {endpoint}: {e}")
        raise UpstreamAPIError("invalid_response", endpoint) from e


class SlackApiClient:
    """Shared, reentrant client for read-only Slack Web API calls.

    The bearer token is supplied per call, so one instance serves every
    workspace. The underlying aiohttp session is created on first use and
    reused until ``aclose``.
    """

    def __init__(self, base_url: str = SLACK_API_BASE, timeout: int = DEFAULT_TIMEOUT):
        self.base_url = base_url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
        return self._session

    def _web_client(self, token: str) -> AsyncWebClient:
        return AsyncWebClient(
            token=token,
            base_url=self.base_url,
            timeout=self.timeout,
            session=self._get_session(),
            retry_handlers=[],
        )

    def _handle_response(self, response) -> SlackResponse:
        """Convert a Slack SDK response to our envelope"""
        data = response.data if isinstance(response.data, dict) else {}
        return SlackResponse(
            ok=bool(data.get("ok", False)),
            data=data,
            error=data.get("error"),
            warning=data.get("warning"),
        )

    async def call(self, endpoint: str, token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET ``endpoint`` with ``params`` and return the payload of a successful envelope."""
        client = self._web_client(token)
        try:
            response = await client.api_call(endpoint, http_verb="GET", params=build_query(params))
        except SlackApiError as e:
            code = e.response.get("error") if e.response is not None else None
            logger.warning(f"Slack API Error in {endpoint}: {code}")
            raise UpstreamAPIError(code or "unknown_error", endpoint) from e
        except (SlackClientError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Transport error calling {endpoint}: {e!r}")
            raise TransportError(endpoint) from e

        envelope = self._handle_response(response)
        if not envelope.ok:
            raise UpstreamAPIError(envelope.error or "unknown_error", endpoint)
        if envelope.warning:
            logger.debug(f"Slack warning from {endpoint}: {envelope.warning}")
        return envelope.data

    async def aclose(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None


def payload_path(payload: Dict[str, Any], *path: str) -> Any:
    """Walk nested payload keys, e.g. ``payload_path(data, "messages", "matches")``."""
    node: Any = payload
    for key in path:
        if not isinstance(node, dict):
            raise UpstreamAPIError("invalid_response")
        node = node.get(key)
    return node
