from datetime import datetime, timezone

from sqlalchemy import select

from widgetchat.client.db.psql import session_scope
from widgetchat.db.models.conversation import Conversation
from widgetchat.db.models.message import SENDER_TYPES, Message
from widgetchat.errors import NotFoundError, ValidationError
from widgetchat.service.store.conversations import touch_conversation


def insert_message(
    chat_id: str,
    widget_id: str,
    content: str,
    sender_type: str,
    is_auto_reply: bool = False,
    auto_reply_keyword: str | None = None,
) -> tuple[Message, Conversation]:
    """Store a message and advance its conversation's updated_at in one transaction.

    Returns the new row and the touched conversation.
    """
    if not content or not content.strip():
        raise ValidationError("Message content is required.")
    if sender_type not in SENDER_TYPES:
        raise ValidationError(f"unknown sender type {sender_type!r}")
    if is_auto_reply != bool(auto_reply_keyword):
        raise ValidationError("auto_reply_keyword must be set exactly when is_auto_reply is true")

    now = datetime.now(timezone.utc)
    with session_scope() as db:
        conversation = touch_conversation(db, chat_id, now)
        if conversation.widget_id != widget_id:
            raise NotFoundError(f"chat {chat_id} not found")
        message = Message(
            chat_id=chat_id,
            widget_id=widget_id,
            content=content,
            sender_type=sender_type,
            is_auto_reply=is_auto_reply,
            auto_reply_keyword=auto_reply_keyword if is_auto_reply else None,
            created_at=now,
        )
        db.add(message)
        db.flush()
        return message, conversation


def list_messages(chat_id: str) -> list[Message]:
    with session_scope() as db:
        rows = db.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        ).scalars()
        return list(rows)
