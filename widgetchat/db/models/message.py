from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from widgetchat.db.session import Base

SENDER_VISITOR = "visitor"
SENDER_BUSINESS = "business"
SENDER_TYPES = (SENDER_VISITOR, SENDER_BUSINESS)


class Message(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    # Parent conversation row
    chat_id = Column(String(36), ForeignKey("chats.id"), nullable=False, index=True)
    # Redundant with the chat, kept for widget scoped queries
    widget_id = Column(String(36), ForeignKey("widgets.id"), nullable=False, index=True)
    content = Column(String, nullable=False)
    # visitor | business
    sender_type = Column(String(16), nullable=False)
    is_auto_reply = Column(Boolean, default=False, nullable=False)
    # Set only on auto-replies: the keyword of the winning rule
    auto_reply_keyword = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
