import asyncio
import time

import pytest

import widgetchat.service.chat.chat as chat_module
import widgetchat.service.channel.channel as channel_module
from widgetchat.errors import NotFoundError, ValidationError
from widgetchat.service.store.conversations import get_conversation
from widgetchat.service.store.messages import list_messages
from widgetchat.service.store.rules import create_rule
from widgetchat.service.store.widgets import get_or_create_widget, update_widget


def test_resume_or_create_new_session(widget, sessions):
    result = chat_module.resume_or_create(widget.id, None)

    assert result.resumed is False
    assert result.chat_id is None
    assert result.messages == []
    assert sessions.load(result.session_token).widget_id == widget.id


def test_resume_or_create_unknown_widget():
    with pytest.raises(NotFoundError):
        chat_module.resume_or_create("missing", None)


@pytest.mark.asyncio
async def test_resume_returns_history(widget):
    started = chat_module.resume_or_create(widget.id, None)
    await chat_module.send_visitor_message(started.session_token, "hello", "https://shop.example/")

    resumed = chat_module.resume_or_create(widget.id, started.session_token)

    assert resumed.resumed is True
    assert resumed.session_token == started.session_token
    assert resumed.chat_id is not None
    assert [m.content for m in resumed.messages] == ["Hello! How can we help you today?", "hello"]


def test_session_of_another_widget_is_not_reused(widget):
    other = get_or_create_widget("account-2")
    started = chat_module.resume_or_create(widget.id, None)

    result = chat_module.resume_or_create(other.id, started.session_token)

    assert result.resumed is False
    assert result.session_token != started.session_token


@pytest.mark.asyncio
async def test_first_message_starts_conversation_and_auto_replies(widget):
    create_rule(widget.id, "hours", "9-5 EST")
    token = chat_module.resume_or_create(widget.id, None).session_token

    result = await chat_module.send_visitor_message(token, "  what are your hours?  ", "https://shop.example/contact")

    conversation = get_conversation(result.chat_id)
    assert conversation.visitor_page == "https://shop.example/contact"
    assert result.message.content == "what are your hours?"
    assert result.auto_reply.content == "9-5 EST"

    stored = list_messages(result.chat_id)
    assert [(m.sender_type, m.is_auto_reply) for m in stored] == [
        ("business", False),
        ("visitor", False),
        ("business", True),
    ]
    auto_replies = [m for m in stored if m.is_auto_reply]
    assert len(auto_replies) == 1
    assert auto_replies[0].auto_reply_keyword == "hours"
    assert conversation.updated_at >= auto_replies[0].created_at


@pytest.mark.asyncio
async def test_blank_welcome_message_is_not_posted(widget):
    update_widget(widget.id, {"welcome_message": "  "})
    token = chat_module.resume_or_create(widget.id, None).session_token

    result = await chat_module.send_visitor_message(token, "hi")

    assert [m.sender_type for m in list_messages(result.chat_id)] == ["visitor"]


@pytest.mark.asyncio
async def test_empty_message_is_rejected_before_storing(widget, sessions):
    token = chat_module.resume_or_create(widget.id, None).session_token

    with pytest.raises(ValidationError):
        await chat_module.send_visitor_message(token, "   ")

    assert sessions.load(token).chat_id is None


@pytest.mark.asyncio
async def test_unknown_session_token():
    with pytest.raises(NotFoundError):
        await chat_module.send_visitor_message("nope", "hello")


@pytest.mark.asyncio
async def test_identification_prompt_fires_once_at_fifth_message(widget):
    token = chat_module.resume_or_create(widget.id, None).session_token

    prompts = [
        (await chat_module.send_visitor_message(token, f"message {n}")).prompt_identification
        for n in range(1, 8)
    ]

    assert prompts == [False, False, False, False, True, False, False]


@pytest.mark.asyncio
async def test_identify_updates_conversation_and_suppresses_prompt(widget, sessions):
    token = chat_module.resume_or_create(widget.id, None).session_token
    sent = await chat_module.send_visitor_message(token, "hello")
    updates = []
    channel_module.subscribe_conversations(widget.id, updates.append)

    result = await chat_module.identify(token, " Ann ", "ann@example.com")

    assert result.acknowledgement == "Thank you, Ann! We'll use your contact information to follow up if needed."
    conversation = get_conversation(sent.chat_id)
    assert (conversation.visitor_name, conversation.visitor_email) == ("Ann", "ann@example.com")
    assert updates[0].type == "UPDATE"

    prompts = [(await chat_module.send_visitor_message(token, "more")).prompt_identification for _ in range(5)]
    assert not any(prompts)


@pytest.mark.asyncio
async def test_identify_requires_both_fields(widget):
    token = chat_module.resume_or_create(widget.id, None).session_token
    await chat_module.send_visitor_message(token, "hello")

    with pytest.raises(ValidationError):
        await chat_module.identify(token, "Ann", " ")


@pytest.mark.asyncio
async def test_identify_before_any_message(widget):
    token = chat_module.resume_or_create(widget.id, None).session_token

    with pytest.raises(ValidationError):
        await chat_module.identify(token, "Ann", "ann@example.com")


@pytest.mark.asyncio
async def test_subscribers_see_inserts_in_send_order(widget):
    create_rule(widget.id, "price", "From $19")
    token = chat_module.resume_or_create(widget.id, None).session_token
    first = await chat_module.send_visitor_message(token, "start")
    events = []
    channel_module.subscribe_messages(first.chat_id, events.append)

    texts = ["one", "price?", "two", "price again", "three"]
    for text in texts:
        await chat_module.send_visitor_message(token, text)

    observed = [(e.new["sender_type"], e.new["content"]) for e in events]
    assert observed == [
        ("visitor", "one"),
        ("visitor", "price?"),
        ("business", "From $19"),
        ("visitor", "two"),
        ("visitor", "price again"),
        ("business", "From $19"),
        ("visitor", "three"),
    ]
    ids = [e.new["id"] for e in events]
    assert ids == sorted(ids)


@pytest.mark.asyncio
async def test_business_reply_does_not_trigger_auto_reply(widget):
    create_rule(widget.id, "hours", "9-5 EST")
    token = chat_module.resume_or_create(widget.id, None).session_token
    sent = await chat_module.send_visitor_message(token, "hello")

    reply = await chat_module.send_business_message(sent.chat_id, "our hours are on the site")

    assert reply.sender_type == "business"
    assert reply.is_auto_reply is False
    assert not any(m.is_auto_reply for m in list_messages(sent.chat_id))


@pytest.mark.asyncio
async def test_visitor_write_failure_is_reported(widget, monkeypatch):
    token = chat_module.resume_or_create(widget.id, None).session_token
    await chat_module.send_visitor_message(token, "hello")

    def broken_insert(*_args, **_kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(chat_module, "insert_message", broken_insert)

    with pytest.raises(RuntimeError, match="db down"):
        await chat_module.send_visitor_message(token, "again")


def test_history_and_conversations_for_unknown_ids():
    with pytest.raises(NotFoundError):
        chat_module.get_history("missing")
    with pytest.raises(NotFoundError):
        chat_module.get_conversations("missing")
    with pytest.raises(NotFoundError):
        chat_module.signal_typing("missing", "visitor")


@pytest.mark.asyncio
async def test_concurrent_sends_from_one_session_count_every_message(widget, sessions):
    token = chat_module.resume_or_create(widget.id, None).session_token
    first = await chat_module.send_visitor_message(token, "message 1")

    rest = await asyncio.gather(*(chat_module.send_visitor_message(token, f"message {n}") for n in range(2, 6)))

    assert sessions.load(token).message_count == 5
    assert {r.chat_id for r in rest} == {first.chat_id}
    prompts = [first.prompt_identification] + [r.prompt_identification for r in rest]
    assert prompts.count(True) == 1


@pytest.mark.asyncio
async def test_concurrent_sends_keep_each_reply_after_its_trigger(widget):
    create_rule(widget.id, "price", "From $19")
    create_rule(widget.id, "hours", "9-5 EST")
    token = chat_module.resume_or_create(widget.id, None).session_token
    first = await chat_module.send_visitor_message(token, "start")
    events = []
    channel_module.subscribe_messages(first.chat_id, events.append)

    texts = ["price?", "hello", "hours?", "thanks", "price again", "open hours", "bye"]
    await asyncio.gather(*(chat_module.send_visitor_message(token, text) for text in texts))

    rows = [e.new for e in events]
    assert len(rows) == len(texts) + 4
    assert sorted(r["content"] for r in rows if r["sender_type"] == "visitor") == sorted(texts)
    for previous, row in zip(rows, rows[1:]):
        if row["is_auto_reply"]:
            assert previous["sender_type"] == "visitor"
            assert row["auto_reply_keyword"] in previous["content"]
    assert not rows[0]["is_auto_reply"]
    ids = [r["id"] for r in rows]
    assert ids == sorted(ids)
    assert [m.id for m in list_messages(first.chat_id)][-len(rows):] == ids


@pytest.mark.asyncio
async def test_message_write_runs_off_the_event_loop(monkeypatch):
    def slow_insert(*_args, **_kwargs):
        time.sleep(0.2)
        raise RuntimeError("db down")

    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.01)
            ticks += 1

    monkeypatch.setattr(chat_module, "insert_message", slow_insert)
    background = asyncio.create_task(ticker())

    with pytest.raises(RuntimeError, match="db down"):
        await chat_module.record_message("chat-1", "widget-1", "hello", "visitor")

    background.cancel()
    assert ticks >= 5
