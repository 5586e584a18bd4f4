import logging
from datetime import datetime, timezone
from starlette.responses import JSONResponse
from slack_broker.context import BrokerSettings, DEFAULT_SCOPES, ServiceContext
from slack_broker.core.storage_manager import TokenStorageManager
from slack_broker.services.slack.api_client import SlackApiClient
from slack_broker.services.slack.tools import create_slack_mcp
from slack_broker.utils import database
from slack_broker.utils import env_handler as env

logging.basicConfig(level=env.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_context() -> ServiceContext:
    """Wire the store, Slack client and settings from the environment."""
    engine = database.build_engine(env.DATABASE_URL)
    database.init_db(engine)
    store = TokenStorageManager(database.build_session_factory(engine), env.TOKEN_ENCRYPTION_KEYS)
    settings = BrokerSettings(
        auth_base_url=env.AUTH_BASE_URL,
        slack_client_id=env.SLACK_CLIENT_ID,
        slack_client_secret=env.SLACK_CLIENT_SECRET,
        slack_redirect_uri=env.SLACK_REDIRECT_URI,
        scopes=env.SLACK_SCOPES or list(DEFAULT_SCOPES),
    )
    return ServiceContext(store=store, api_client=SlackApiClient(), settings=settings)


context = build_context()

# Create the main server
mcp = create_slack_mcp(context)


# Custom health check route
@mcp.custom_route("/health", methods=["GET"])
async def health_check(request):
    """Health check endpoint"""
    return JSONResponse({
        "status": "healthy",
        "service": "Slack MCP Server",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


def main() -> None:
    logger.info(f"Auth server running on {env.AUTH_BASE_URL}")
    logger.info(f"To authenticate: {context.settings.login_url}")
    mcp.run(transport="http", host=env.HOST, port=env.PORT)


if __name__ == "__main__":
    main()
