import logging
from collections.abc import Callable

import widgetchat.config.config as configs
from widgetchat.db.models.conversation import Conversation
from widgetchat.db.models.message import SENDER_TYPES, Message
from widgetchat.errors import ValidationError
from widgetchat.model.channel.channel_event import (
    EVENT_INSERT,
    EVENT_TYPING,
    EVENT_UPDATE,
    ChannelEvent,
)
from widgetchat.model.chat.chat_response import ConversationResponse, MessageResponse
from widgetchat.service.channel.bus import EventBus, Subscription

logger = logging.getLogger(__name__)

bus = EventBus()

EventHandler = Callable[[ChannelEvent], None]


def messages_topic(chat_id: str) -> str:
    return f"chat:{chat_id}:messages"


def conversations_topic(widget_id: str) -> str:
    return f"widget:{widget_id}:chats"


def typing_topic(chat_id: str) -> str:
    return f"chat:{chat_id}:typing"


def subscribe_messages(chat_id: str, on_event: EventHandler) -> Subscription:
    return bus.subscribe(messages_topic(chat_id), on_event)


def subscribe_conversations(widget_id: str, on_event: EventHandler) -> Subscription:
    return bus.subscribe(conversations_topic(widget_id), on_event)


def subscribe_typing(chat_id: str, on_event: EventHandler) -> Subscription:
    return bus.subscribe(typing_topic(chat_id), on_event)


def unsubscribe(handle: Subscription) -> None:
    bus.unsubscribe(handle)


def publish_message_insert(message: Message) -> None:
    event = ChannelEvent(
        type=EVENT_INSERT,
        table="chat_messages",
        chat_id=message.chat_id,
        new=MessageResponse.model_validate(message).model_dump(mode="json"),
    )
    bus.publish(messages_topic(message.chat_id), event)


def publish_conversation_change(conversation: Conversation, created: bool = False) -> None:
    event = ChannelEvent(
        type=EVENT_INSERT if created else EVENT_UPDATE,
        table="chats",
        chat_id=conversation.id,
        new=ConversationResponse.model_validate(conversation).model_dump(mode="json"),
    )
    bus.publish(conversations_topic(conversation.widget_id), event)


def broadcast_typing(chat_id: str, sender_type: str) -> int:
    """Fire-and-forget typing signal; clients drop it after TYPING_EXPIRY_SEC."""
    if sender_type not in SENDER_TYPES:
        raise ValidationError(f"unknown sender type {sender_type!r}")
    event = ChannelEvent(
        type=EVENT_TYPING,
        chat_id=chat_id,
        sender_type=sender_type,
        expires_in_sec=configs.TYPING_EXPIRY_SEC,
    )
    return bus.publish(typing_topic(chat_id), event)
