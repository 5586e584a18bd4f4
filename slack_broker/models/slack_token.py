from datetime import datetime

from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import String, Text, DateTime

# SQLAlchemy base
class Base(DeclarativeBase):
    pass

# ORM model for one connected Slack workspace; team_id is the tenant key
class SlackToken(Base):
    __tablename__ = "slack_tokens"

    team_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Fernet ciphertext ("enc:v1:" prefix) when encryption keys are configured
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    team_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
