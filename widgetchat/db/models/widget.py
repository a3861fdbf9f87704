import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from widgetchat.db.session import Base

DEFAULT_PRIMARY_COLOR = "#0284c7"
DEFAULT_HEADER_TEXT = "Chat with us"
DEFAULT_WELCOME_MESSAGE = "Hello! How can we help you today?"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Widget(Base):
    __tablename__ = "widgets"

    # Public identifier carried by the embed script tag (data-uid)
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # One widget per owning account
    account_id = Column(String(64), unique=True, nullable=False, index=True)
    primary_color = Column(String(16), default=DEFAULT_PRIMARY_COLOR, nullable=False)
    header_text = Column(String, default=DEFAULT_HEADER_TEXT, nullable=False)
    welcome_message = Column(String, default=DEFAULT_WELCOME_MESSAGE, nullable=False)
    logo_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
