import json
import logging
from dataclasses import asdict, dataclass
from typing import Optional, Protocol

import widgetchat.config.config as configs

logger = logging.getLogger(__name__)


@dataclass
class VisitorSession:
    token: str
    widget_id: str
    chat_id: Optional[str] = None
    visitor_name: Optional[str] = None
    visitor_email: Optional[str] = None
    message_count: int = 0
    identification_prompted: bool = False

    @property
    def identified(self) -> bool:
        return bool(self.visitor_name and self.visitor_email)


class SessionStore(Protocol):
    def load(self, token: str) -> Optional[VisitorSession]: ...

    def save(self, session: VisitorSession) -> None: ...


def _session_key(token: str) -> str:
    return f"widgetchat:session:{token}"


def _decode(data: Optional[str]) -> Optional[VisitorSession]:
    if data is None:
        return None
    try:
        decoded = json.loads(data)
        return VisitorSession(**decoded)
    except (json.JSONDecodeError, TypeError):
        logger.warning("discarding unreadable visitor session")
        return None


class RedisSessionStore:
    def __init__(self, client, ttl_seconds: int = configs.SESSION_TTL_SEC):
        self._client = client
        self._ttl_seconds = ttl_seconds

    def load(self, token: str) -> Optional[VisitorSession]:
        return _decode(self._client.get(_session_key(token)))

    def save(self, session: VisitorSession) -> None:
        self._client.setex(_session_key(session.token), self._ttl_seconds, json.dumps(asdict(session)))


class MemorySessionStore:
    def __init__(self):
        self._data: dict[str, str] = {}

    def load(self, token: str) -> Optional[VisitorSession]:
        return _decode(self._data.get(_session_key(token)))

    def save(self, session: VisitorSession) -> None:
        self._data[_session_key(session.token)] = json.dumps(asdict(session))


def build_session_store(kind: str = configs.SESSION_STORE) -> SessionStore:
    if kind == "memory":
        return MemorySessionStore()
    if kind == "redis":
        from widgetchat.client.db.redis import redis_client

        return RedisSessionStore(redis_client)
    raise ValueError(f"unknown session store {kind!r}")
