import asyncio
import logging

import widgetchat.config.config as configs
from widgetchat.db.models.message import SENDER_BUSINESS, SENDER_VISITOR, Message
from widgetchat.service.channel.channel import publish_conversation_change, publish_message_insert
from widgetchat.service.matcher.matcher import match
from widgetchat.service.store.messages import insert_message
from widgetchat.service.store.rules import list_rules

logger = logging.getLogger(__name__)


def should_dispatch(message: Message) -> bool:
    # Business messages and auto-replies never trigger matching
    return message.sender_type == SENDER_VISITOR and not message.is_auto_reply


async def on_visitor_message(message: Message) -> Message | None:
    """Send the canned reply for a freshly committed visitor message, if any.

    Best effort: rule lookup or reply storage failures are logged and the
    visitor message stays as it is, without a reply. Never raises.
    """
    if not should_dispatch(message):
        return None

    try:
        rules = await asyncio.wait_for(
            asyncio.to_thread(list_rules, message.widget_id),
            timeout=configs.AUTO_REPLY_TIMEOUT_SEC,
        )
    except asyncio.TimeoutError:
        logger.warning("auto reply rule lookup timed out widget=%s message=%s", message.widget_id, message.id)
        return None
    except Exception:
        logger.exception("auto reply rule lookup failed widget=%s message=%s", message.widget_id, message.id)
        return None

    rule = match(message.content, rules)
    if rule is None:
        return None

    try:
        reply, conversation = await asyncio.wait_for(
            asyncio.to_thread(
                insert_message,
                chat_id=message.chat_id,
                widget_id=message.widget_id,
                content=rule.response,
                sender_type=SENDER_BUSINESS,
                is_auto_reply=True,
                auto_reply_keyword=rule.keyword,
            ),
            timeout=configs.AUTO_REPLY_TIMEOUT_SEC,
        )
    except asyncio.TimeoutError:
        # the write may still land; it then shows up on the next sync, unannounced
        logger.warning("auto reply insert timed out chat=%s message=%s rule=%s", message.chat_id, message.id, rule.id)
        return None
    except Exception:
        logger.exception("auto reply insert failed chat=%s message=%s rule=%s", message.chat_id, message.id, rule.id)
        return None

    logger.info("auto reply sent chat=%s message=%s keyword=%s", message.chat_id, message.id, rule.keyword)
    publish_message_insert(reply)
    publish_conversation_change(conversation)
    return reply
