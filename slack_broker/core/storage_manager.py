import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from slack_broker.models.slack_token import SlackToken
from slack_broker.services.slack.schemas.slack import WorkspaceCredential
from slack_broker.utils.crypto import decrypt_token, encrypt_token

logger = logging.getLogger(__name__)


class TokenStorageManager:
    """DB-backed store of Slack workspace credentials using SQLAlchemy.

    Keyed by team id. ``upsert`` overwrites token and name of an existing
    workspace and keeps its original ``created_at``.
    """

    def __init__(self, session_factory: sessionmaker, encryption_keys: Sequence[str] = ()):
        self._session_factory = session_factory
        self._encryption_keys = list(encryption_keys)

    def _to_credential(self, row: SlackToken) -> Optional[WorkspaceCredential]:
        access_token, was_encrypted = decrypt_token(row.access_token, self._encryption_keys)
        if access_token is None:
            # Encrypted but cannot decrypt
            logger.error(f"Token for team {row.team_id} present but cannot decrypt (check keys/rotation)")
            return None
        if not was_encrypted and self._encryption_keys:
            logger.debug(f"Plaintext token row for team {row.team_id}; re-authorize to encrypt it")
        return WorkspaceCredential(
            workspace_id=row.team_id,
            access_token=access_token,
            workspace_name=row.team_name,
            created_at=row.created_at,
        )

    def find(self, workspace_id: str) -> Optional[WorkspaceCredential]:
        """Return the credential for a workspace, or None when it was never connected."""
        with self._session_factory() as session:
            row = session.get(SlackToken, workspace_id)
            if not row:
                logger.debug(f"No token found for team: {workspace_id}")
                return None
            return self._to_credential(row)

    def _write(self, session: Session, workspace_id: str, stored_token: str, workspace_name: str) -> SlackToken:
        now = datetime.now(timezone.utc)
        existing = session.get(SlackToken, workspace_id)
        if existing:
            existing.access_token = stored_token
            existing.team_name = workspace_name
            existing.updated_at = now
            return existing
        row = SlackToken(
            team_id=workspace_id,
            access_token=stored_token,
            team_name=workspace_name,
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        return row

    def upsert(self, workspace_id: str, access_token: str, workspace_name: str) -> WorkspaceCredential:
        """Insert or overwrite the credential for a workspace (last writer wins)."""
        stored_token = encrypt_token(access_token, self._encryption_keys)
        try:
            with self._session_factory() as session:
                try:
                    row = self._write(session, workspace_id, stored_token, workspace_name)
                    session.commit()
                except IntegrityError:
                    # A concurrent authorization inserted the same team first; overwrite it
                    session.rollback()
                    row = self._write(session, workspace_id, stored_token, workspace_name)
                    session.commit()
                logger.info(f"Stored Slack token for team: {workspace_id} ({workspace_name})")
                return WorkspaceCredential(
                    workspace_id=row.team_id,
                    access_token=access_token,
                    workspace_name=row.team_name,
                    created_at=row.created_at,
                )
        except SQLAlchemyError as e:
            logger.error(f"DB error writing token: {e}")
            raise

    def list_all(self) -> List[WorkspaceCredential]:
        """Every connected workspace, oldest connection first."""
        try:
            with self._session_factory() as session:
                rows = session.execute(select(SlackToken).order_by(SlackToken.created_at)).scalars().all()
                credentials = [self._to_credential(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"DB error listing tokens: {e}")
            raise
        return [c for c in credentials if c is not None]
