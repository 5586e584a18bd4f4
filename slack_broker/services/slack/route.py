import html
import logging
import urllib.parse
from typing import Any, Dict

import aiohttp
from fastmcp import FastMCP
from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, RedirectResponse

from slack_broker.context import BrokerSettings, ServiceContext

logger = logging.getLogger(__name__)

SLACK_AUTHORIZE_URL = "https://slack.com/oauth/v2/authorize"
SLACK_TOKEN_URL = "https://slack.com/api/oauth.v2.access"


class OAuthExchangeError(Exception):
    pass


def build_authorize_url(settings: BrokerSettings) -> str:
    query = urllib.parse.urlencode(
        {
            "client_id": settings.slack_client_id or "",
            "scope": ",".join(settings.scopes),
            "redirect_uri": settings.redirect_uri,
        },
        safe=":,",
    )
    return f"{SLACK_AUTHORIZE_URL}?{query}"


async def exchange_code(settings: BrokerSettings, code: str) -> Dict[str, Any]:
    """Trade an authorization code for a workspace token via oauth.v2.access."""
    data = {
        "client_id": settings.slack_client_id,
        "client_secret": settings.slack_client_secret,
        "code": code,
        "redirect_uri": settings.redirect_uri,
    }
    async with aiohttp.ClientSession() as session:
        async with session.post(SLACK_TOKEN_URL, data=data) as response:
            token_response = await response.json()

    if not token_response.get("ok"):
        raise OAuthExchangeError(f"Slack OAuth error: {token_response.get('error', 'Unknown error')}")
    team = token_response.get("team") or {}
    if not token_response.get("access_token") or not team.get("id"):
        raise OAuthExchangeError("Slack OAuth response is missing the access token or team")
    return token_response


def _success_page(team_name: str, team_id: str) -> str:
    return f"""
      <html>
        <body style="font-family: Arial, sans-serif; padding: 40px; text-align: center;">
          <h1>Success!</h1>
          <p>Slack workspace "{html.escape(team_name)}" connected!</p>
          <p>Team ID: <code>{html.escape(team_id)}</code></p>
          <p>You can close this window.</p>
        </body>
      </html>
    """


def register_routes(mcp: FastMCP, context: ServiceContext) -> None:
    """Attach the OAuth and workspace-listing HTTP routes to the MCP app."""
    settings = context.settings
    store = context.store

    @mcp.custom_route("/auth/slack/login", methods=["GET"])
    async def slack_login(request: Request):
        """Redirect the browser to Slack's consent screen"""
        if not settings.slack_client_id:
            return JSONResponse({"error": "SLACK_CLIENT_ID is not configured"}, status_code=500)
        return RedirectResponse(build_authorize_url(settings), status_code=302)

    @mcp.custom_route("/auth/slack/callback", methods=["GET"])
    async def slack_oauth_callback(request: Request):
        """Handle Slack OAuth callback and store the workspace token"""
        code = request.query_params.get("code")
        error = request.query_params.get("error")

        if error:
            return HTMLResponse(f"OAuth error: {html.escape(error)}", status_code=400)
        if not code:
            return HTMLResponse("Missing authorization code", status_code=400)

        try:
            token_response = await exchange_code(settings, code)
            team = token_response["team"]
            team_name = team.get("name") or team["id"]
            store.upsert(team["id"], token_response["access_token"], team_name)
        except (OAuthExchangeError, aiohttp.ClientError, SQLAlchemyError, ValueError) as e:
            # ValueError: undecodable token response, or bad TOKEN_ENCRYPTION_KEYS
            logger.error(f"OAuth callback error: {e}")
            return HTMLResponse(f"Error: {html.escape(str(e))}", status_code=500)

        logger.info(f"Slack workspace {team['id']} ({team_name}) connected")
        return HTMLResponse(_success_page(team_name, team["id"]))

    @mcp.custom_route("/teams", methods=["GET"])
    async def list_teams(request: Request):
        """Connected workspaces, without their tokens"""
        try:
            credentials = store.list_all()
        except SQLAlchemyError as e:
            return JSONResponse({"error": "Failed to fetch teams", "details": str(e)}, status_code=500)
        return JSONResponse({
            "teams": [
                {
                    "team_id": c.workspace_id,
                    "team_name": c.workspace_name,
                    "created_at": c.created_at.isoformat(),
                }
                for c in credentials
            ]
        })

    @mcp.custom_route("/", methods=["GET"])
    async def index(request: Request):
        return JSONResponse({
            "status": "OK",
            "message": "Slack MCP Auth Server",
            "endpoints": {
                "login": "/auth/slack/login",
                "callback": "/auth/slack/callback",
                "teams": "/teams",
                "mcp": "/mcp",
            },
        })
