from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_TYPING = "typing"
EVENT_SYNC = "sync"


class ChannelEvent(BaseModel):
    type: Literal["INSERT", "UPDATE", "typing", "sync"]
    # chat_messages | chats, unset for typing
    table: Optional[str] = None
    new: Optional[Dict[str, Any]] = Field(None, description="Row after the change")
    rows: Optional[List[Dict[str, Any]]] = Field(None, description="Full current state, sync frames only")
    chat_id: Optional[str] = None
    sender_type: Optional[str] = None
    expires_in_sec: Optional[float] = None
