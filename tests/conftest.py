import os

import pytest
from fastapi.testclient import TestClient

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SESSION_STORE"] = "memory"
for var in ("DB_HOST", "DB_USER", "DB_PWD", "DB_NAME"):
    os.environ.pop(var, None)

from widgetchat.main import app
from widgetchat.db.session import Base, engine
import widgetchat.service.channel.channel as channel_module
import widgetchat.service.chat.chat as chat_module
from widgetchat.service.channel.bus import EventBus
from widgetchat.service.context.session_store import MemorySessionStore
from widgetchat.service.store.widgets import get_or_create_widget


@pytest.fixture(autouse=True)
def database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def bus(monkeypatch):
    fresh = EventBus()
    monkeypatch.setattr(channel_module, "bus", fresh)
    return fresh


@pytest.fixture(autouse=True)
def sessions(monkeypatch):
    store = MemorySessionStore()
    monkeypatch.setattr(chat_module, "session_store", store)
    return store


#scope : function < class < module < package < session
@pytest.fixture(scope="function")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def widget():
    return get_or_create_widget("account-1")
