from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from widgetchat.client.db.psql import session_scope
from widgetchat.db.models.conversation import Conversation
from widgetchat.errors import NotFoundError

_EDITABLE_FIELDS = ("visitor_name", "visitor_email", "visitor_page")


def get_conversation(chat_id: str) -> Conversation | None:
    with session_scope() as db:
        return db.get(Conversation, chat_id)


def list_conversations(widget_id: str) -> list[Conversation]:
    with session_scope() as db:
        rows = db.execute(
            select(Conversation)
            .where(Conversation.widget_id == widget_id)
            .order_by(Conversation.updated_at.desc())
        ).scalars()
        return list(rows)


def create_conversation(
    widget_id: str,
    page_url: str | None = None,
    visitor_name: str | None = None,
    visitor_email: str | None = None,
) -> Conversation:
    with session_scope() as db:
        conversation = Conversation(
            widget_id=widget_id,
            visitor_page=page_url,
            visitor_name=visitor_name,
            visitor_email=visitor_email,
        )
        db.add(conversation)
        db.flush()
        return conversation


def update_conversation(chat_id: str, fields: dict[str, Any]) -> Conversation:
    with session_scope() as db:
        conversation = db.get(Conversation, chat_id)
        if conversation is None:
            raise NotFoundError(f"chat {chat_id} not found")
        for name, value in fields.items():
            if name in _EDITABLE_FIELDS:
                setattr(conversation, name, value)
        conversation.updated_at = datetime.now(timezone.utc)
        db.flush()
        return conversation


def touch_conversation(db: Session, chat_id: str, at: datetime) -> Conversation:
    """Advance updated_at inside the caller's transaction."""
    conversation = db.get(Conversation, chat_id)
    if conversation is None:
        raise NotFoundError(f"chat {chat_id} not found")
    conversation.updated_at = at
    return conversation


def touch_updated_at(chat_id: str, at: datetime | None = None) -> Conversation:
    with session_scope() as db:
        conversation = touch_conversation(db, chat_id, at or datetime.now(timezone.utc))
        db.flush()
        return conversation
