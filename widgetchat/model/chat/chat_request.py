from pydantic import BaseModel, Field
from typing import Literal, Optional


class SessionRequest(BaseModel):
    session_token: Optional[str] = Field(None, description="Token saved by the widget from a previous visit")


class VisitorMessageRequest(BaseModel):
    content: str = Field(..., description="Visitor's message")
    page_url: Optional[str] = Field(None, description="Page the widget is embedded on")


class BusinessMessageRequest(BaseModel):
    content: str = Field(..., description="Agent's reply typed in the dashboard")


class IdentifyRequest(BaseModel):
    name: str
    email: str


class TypingRequest(BaseModel):
    sender_type: Literal["visitor", "business"] = "visitor"
