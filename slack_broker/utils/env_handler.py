import os
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _require(name: str) -> str:
    val = os.getenv(name)
    if not val:
        raise EnvironmentError(f"Missing required environment variable: {name}")
    return val


def _optional(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.getenv(name)
    return val if val is not None else default


def _split(raw: Optional[str]) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()] if raw else []


# Always required
DATABASE_URL: str = _require("DATABASE_URL")

# Public base URL of this server, used for the OAuth redirect and in remediation messages
AUTH_BASE_URL: str = (_optional("AUTH_BASE_URL", "http://localhost:8000") or "").rstrip("/")

# Slack app credentials; only the OAuth routes need them
SLACK_CLIENT_ID: Optional[str] = _optional("SLACK_CLIENT_ID")
SLACK_CLIENT_SECRET: Optional[str] = _optional("SLACK_CLIENT_SECRET")
# Defaults to <AUTH_BASE_URL>/auth/slack/callback when unset
SLACK_REDIRECT_URI: Optional[str] = _optional("SLACK_REDIRECT_URI")
SLACK_SCOPES: List[str] = _split(_optional("SLACK_SCOPES"))

# Encryption keys for the access_token column (comma-separated MultiFernet keys, newest first)
TOKEN_ENCRYPTION_KEYS: List[str] = _split(_optional("TOKEN_ENCRYPTION_KEYS"))

HOST: str = _optional("HOST", "0.0.0.0") or "0.0.0.0"
PORT: int = int(_optional("PORT", "8000") or "8000")
LOG_LEVEL: str = (_optional("LOG_LEVEL", "INFO") or "INFO").upper()
