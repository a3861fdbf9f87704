import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from widgetchat.errors import WidgetChatError
from widgetchat.model.channel.channel_event import EVENT_SYNC, ChannelEvent
from widgetchat.model.chat.chat_request import TypingRequest
from widgetchat.service.channel.channel import (
    broadcast_typing,
    subscribe_conversations,
    subscribe_messages,
    subscribe_typing,
    unsubscribe,
)
from widgetchat.service.chat.chat import chat_lock, get_conversations, get_history
from widgetchat.service.store.conversations import get_conversation
from widgetchat.service.store.widgets import get_widget

logger = logging.getLogger(__name__)

ws_router = APIRouter()

CLOSE_NOT_FOUND = 4404


async def _pump(websocket: WebSocket, queue: "asyncio.Queue[ChannelEvent]") -> None:
    # single sender per socket keeps the queue's FIFO order on the wire
    while True:
        event = await queue.get()
        await websocket.send_json(event.model_dump(mode="json", exclude_none=True))


async def _receive(websocket: WebSocket, chat_id: str | None) -> None:
    while True:
        data = await websocket.receive_json()
        if chat_id is None or not isinstance(data, dict) or data.get("type") != "typing":
            continue
        try:
            req = TypingRequest.model_validate(data)
            broadcast_typing(chat_id, req.sender_type)
        except (PydanticValidationError, WidgetChatError):
            logger.warning("ignored bad typing frame chat=%s", chat_id)


async def _serve(websocket: WebSocket, queue: "asyncio.Queue[ChannelEvent]", subscriptions: list, chat_id: str | None) -> None:
    """Run the receive loop and the sender until either one stops, then tear both down."""
    tasks = [
        asyncio.create_task(_receive(websocket, chat_id)),
        asyncio.create_task(_pump(websocket, queue)),
    ]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("websocket failed chat=%s", chat_id, exc_info=exc)
    finally:
        for subscription in subscriptions:
            unsubscribe(subscription)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


@ws_router.websocket("/ws/chats/{chat_id}")
async def chat_socket(websocket: WebSocket, chat_id: str):
    if get_conversation(chat_id) is None:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return
    await websocket.accept()

    queue: asyncio.Queue[ChannelEvent] = asyncio.Queue()
    # snapshot and subscribe under the chat lock so nothing committed in between is lost
    async with chat_lock(chat_id):
        rows = [m.model_dump(mode="json") for m in get_history(chat_id)]
        queue.put_nowait(ChannelEvent(type=EVENT_SYNC, table="chat_messages", chat_id=chat_id, rows=rows))
        subscriptions = [
            subscribe_messages(chat_id, queue.put_nowait),
            subscribe_typing(chat_id, queue.put_nowait),
        ]
    logger.info("chat subscriber joined chat=%s", chat_id)
    await _serve(websocket, queue, subscriptions, chat_id)


@ws_router.websocket("/ws/widgets/{widget_id}/chats")
async def widget_chats_socket(websocket: WebSocket, widget_id: str):
    if get_widget(widget_id) is None:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return
    await websocket.accept()

    queue: asyncio.Queue[ChannelEvent] = asyncio.Queue()
    # no await between snapshot and subscribe: nothing can be published in between
    rows = [c.model_dump(mode="json") for c in get_conversations(widget_id)]
    queue.put_nowait(ChannelEvent(type=EVENT_SYNC, table="chats", rows=rows))
    subscription = subscribe_conversations(widget_id, queue.put_nowait)
    await _serve(websocket, queue, [subscription], None)
