import asyncio
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

import widgetchat.config.config as configs
from widgetchat.db.models.message import SENDER_BUSINESS, SENDER_VISITOR, Message
from widgetchat.errors import NotFoundError, ValidationError
from widgetchat.model.chat.chat_response import (
    ConversationResponse,
    IdentifyResponse,
    MessageResponse,
    SessionResponse,
    VisitorMessageResponse,
)
from widgetchat.service.auto_reply.dispatcher import on_visitor_message
from widgetchat.service.channel.channel import (
    broadcast_typing,
    publish_conversation_change,
    publish_message_insert,
)
from widgetchat.service.context.session_store import SessionStore, VisitorSession, build_session_store
from widgetchat.service.store.conversations import (
    create_conversation,
    get_conversation,
    list_conversations,
    update_conversation,
)
from widgetchat.service.store.messages import insert_message, list_messages
from widgetchat.service.store.widgets import get_widget

logger = logging.getLogger(__name__)

IDENTIFY_ACK = "Thank you, {name}! We'll use your contact information to follow up if needed."

session_store: SessionStore = build_session_store()

_chat_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
_session_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(locks: "weakref.WeakValueDictionary[str, asyncio.Lock]", key: str) -> asyncio.Lock:
    lock = locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        locks[key] = lock
    return lock


@asynccontextmanager
async def chat_lock(chat_id: str) -> AsyncIterator[None]:
    """Serialize writes and publishes for one conversation.

    Everything published for a chat happens while holding this lock, so
    subscribers see events in commit order.
    """
    async with _lock_for(_chat_locks, chat_id):
        yield


@asynccontextmanager
async def session_lock(token: str) -> AsyncIterator[None]:
    # guards the read-modify-write of one visitor session; always taken before chat_lock
    async with _lock_for(_session_locks, token):
        yield


def _require_content(content: str) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Message content is required.")
    return content


def _load_session(token: str) -> VisitorSession:
    session = session_store.load(token)
    if session is None:
        raise NotFoundError(f"session {token} not found")
    return session


async def record_message(chat_id: str, widget_id: str, content: str, sender_type: str) -> tuple[Message, Message | None]:
    """Store a message, fan it out and, for visitor messages, run the auto-reply.

    This is the only write path that triggers the dispatcher, so it runs once
    per stored visitor message no matter how many subscribers are watching.
    """
    async with chat_lock(chat_id):
        message, conversation = await asyncio.to_thread(insert_message, chat_id, widget_id, content, sender_type)
        publish_message_insert(message)
        publish_conversation_change(conversation)
        reply = await on_visitor_message(message)
    return message, reply


def _session_response(session: VisitorSession, resumed: bool) -> SessionResponse:
    messages = list_messages(session.chat_id) if session.chat_id else []
    return SessionResponse(
        session_token=session.token,
        widget_id=session.widget_id,
        chat_id=session.chat_id,
        visitor_name=session.visitor_name,
        visitor_email=session.visitor_email,
        message_count=session.message_count,
        resumed=resumed,
        messages=[MessageResponse.model_validate(m) for m in messages],
    )


def resume_or_create(widget_id: str, session_token: str | None) -> SessionResponse:
    if get_widget(widget_id) is None:
        raise NotFoundError(f"widget {widget_id} not found")

    if session_token:
        session = session_store.load(session_token)
        if session is not None and session.widget_id == widget_id:
            if session.chat_id is None or get_conversation(session.chat_id) is not None:
                return _session_response(session, resumed=True)
            logger.warning("session=%s points at missing chat=%s, starting over", session.token, session.chat_id)

    session = VisitorSession(token=uuid.uuid4().hex, widget_id=widget_id)
    session_store.save(session)
    return _session_response(session, resumed=False)


async def _start_conversation(session: VisitorSession, page_url: str | None) -> str:
    widget = await asyncio.to_thread(get_widget, session.widget_id)
    if widget is None:
        raise NotFoundError(f"widget {session.widget_id} not found")
    conversation = await asyncio.to_thread(
        create_conversation,
        widget.id,
        page_url=page_url,
        visitor_name=session.visitor_name,
        visitor_email=session.visitor_email,
    )
    logger.info("conversation started chat=%s widget=%s", conversation.id, widget.id)
    publish_conversation_change(conversation, created=True)
    if widget.welcome_message and widget.welcome_message.strip():
        await record_message(conversation.id, widget.id, widget.welcome_message, SENDER_BUSINESS)
    return conversation.id


async def send_visitor_message(session_token: str, content: str, page_url: str | None = None) -> VisitorMessageResponse:
    content = _require_content(content)
    async with session_lock(session_token):
        session = _load_session(session_token)
        if session.chat_id is None:
            session.chat_id = await _start_conversation(session, page_url)
            session_store.save(session)
        chat_id, widget_id = session.chat_id, session.widget_id

    message, reply = await record_message(chat_id, widget_id, content, SENDER_VISITOR)

    # reload: other sends for this session may have saved since the first load
    async with session_lock(session_token):
        session = _load_session(session_token)
        session.message_count += 1
        prompt = (
            session.message_count >= configs.IDENTIFY_PROMPT_THRESHOLD
            and not session.identified
            and not session.identification_prompted
        )
        if prompt:
            session.identification_prompted = True
        session_store.save(session)

    return VisitorMessageResponse(
        chat_id=chat_id,
        message=MessageResponse.model_validate(message),
        auto_reply=MessageResponse.model_validate(reply) if reply is not None else None,
        prompt_identification=prompt,
    )


async def identify(session_token: str, name: str, email: str) -> IdentifyResponse:
    name = (name or "").strip()
    email = (email or "").strip()
    if not name or not email:
        raise ValidationError("Both name and email are required.")
    async with session_lock(session_token):
        session = _load_session(session_token)
        if session.chat_id is None:
            raise ValidationError("Send a message before sharing contact details.")

        async with chat_lock(session.chat_id):
            conversation = await asyncio.to_thread(
                update_conversation, session.chat_id, {"visitor_name": name, "visitor_email": email}
            )
            publish_conversation_change(conversation)

        session.visitor_name = name
        session.visitor_email = email
        session.identification_prompted = True
        session_store.save(session)
    return IdentifyResponse(chat_id=session.chat_id, acknowledgement=IDENTIFY_ACK.format(name=name))


async def send_business_message(chat_id: str, content: str) -> MessageResponse:
    content = _require_content(content)
    conversation = await asyncio.to_thread(get_conversation, chat_id)
    if conversation is None:
        raise NotFoundError(f"chat {chat_id} not found")
    message, _ = await record_message(chat_id, conversation.widget_id, content, SENDER_BUSINESS)
    return MessageResponse.model_validate(message)


def get_history(chat_id: str) -> list[MessageResponse]:
    if get_conversation(chat_id) is None:
        raise NotFoundError(f"chat {chat_id} not found")
    return [MessageResponse.model_validate(m) for m in list_messages(chat_id)]


def get_conversations(widget_id: str) -> list[ConversationResponse]:
    if get_widget(widget_id) is None:
        raise NotFoundError(f"widget {widget_id} not found")
    return [ConversationResponse.model_validate(c) for c in list_conversations(widget_id)]


def signal_typing(chat_id: str, sender_type: str) -> int:
    if get_conversation(chat_id) is None:
        raise NotFoundError(f"chat {chat_id} not found")
    return broadcast_typing(chat_id, sender_type)
