import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String

from widgetchat.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(Base):
    __tablename__ = "chats"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    widget_id = Column(String(36), ForeignKey("widgets.id"), nullable=False, index=True)
    visitor_name = Column(String, nullable=True)
    visitor_email = Column(String, nullable=True)
    # Page the visitor opened the widget on
    visitor_page = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    # Advanced on every new message, auto-replies included
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
