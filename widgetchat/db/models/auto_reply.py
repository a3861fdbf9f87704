from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from widgetchat.db.session import Base


class AutoReply(Base):
    __tablename__ = "auto_replies"

    # Monotonic id; lowest id wins among equal-length keywords
    id = Column(Integer, primary_key=True, index=True)
    widget_id = Column(String(36), ForeignKey("widgets.id"), nullable=False, index=True)
    account_id = Column(String(64), nullable=False)
    # Stored trimmed, never empty
    keyword = Column(String, nullable=False)
    response = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
