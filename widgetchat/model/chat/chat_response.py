from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    chat_id: str
    widget_id: str
    content: str
    sender_type: str
    is_auto_reply: bool
    auto_reply_keyword: Optional[str] = None
    created_at: datetime


class ConversationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    widget_id: str
    visitor_name: Optional[str] = None
    visitor_email: Optional[str] = None
    visitor_page: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SessionResponse(BaseModel):
    session_token: str = Field(..., description="Store client side to resume the conversation")
    widget_id: str
    chat_id: Optional[str] = None
    visitor_name: Optional[str] = None
    visitor_email: Optional[str] = None
    message_count: int = 0
    resumed: bool = False
    messages: List[MessageResponse] = []


class VisitorMessageResponse(BaseModel):
    chat_id: str
    message: MessageResponse
    auto_reply: Optional[MessageResponse] = None
    prompt_identification: bool = Field(False, description="Ask the visitor for name and email")


class IdentifyResponse(BaseModel):
    chat_id: str
    acknowledgement: str
