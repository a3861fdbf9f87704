import json

import pytest

from widgetchat.service.context.session_store import (
    MemorySessionStore,
    RedisSessionStore,
    VisitorSession,
    build_session_store,
)


class _StubRedis:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    def get(self, key):
        return self.values.get(key)

    def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl


def test_redis_session_store_saves_json_with_ttl():
    stub = _StubRedis()
    store = RedisSessionStore(stub, ttl_seconds=120)
    session = VisitorSession(token="tok", widget_id="w-1", chat_id="c-1", message_count=3)

    store.save(session)

    key = "widgetchat:session:tok"
    assert stub.ttls[key] == 120
    assert json.loads(stub.values[key])["chat_id"] == "c-1"
    assert store.load("tok") == session
    assert store.load("missing") is None


def test_redis_session_store_drops_unreadable_data():
    stub = _StubRedis()
    stub.values["widgetchat:session:bad"] = "{not json"
    stub.values["widgetchat:session:odd"] = json.dumps({"unexpected": 1})
    store = RedisSessionStore(stub)

    assert store.load("bad") is None
    assert store.load("odd") is None


def test_memory_session_store_returns_copies():
    store = MemorySessionStore()
    session = VisitorSession(token="tok", widget_id="w-1")
    store.save(session)

    loaded = store.load("tok")
    loaded.message_count = 99

    assert store.load("tok").message_count == 0


def test_identified_requires_name_and_email():
    assert not VisitorSession(token="t", widget_id="w", visitor_name="Ann").identified
    assert VisitorSession(token="t", widget_id="w", visitor_name="Ann", visitor_email="a@x.io").identified


def test_build_session_store():
    assert isinstance(build_session_store("memory"), MemorySessionStore)
    assert isinstance(build_session_store("redis"), RedisSessionStore)
    with pytest.raises(ValueError):
        build_session_store("disk")
