from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AutoReplyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    widget_id: str
    keyword: str
    response: str
    created_at: datetime


class AutoReplyImportResponse(BaseModel):
    imported: int = Field(..., description="Number of rules created from the file")
    auto_replies: List[AutoReplyResponse]


class AutoReplyTestResponse(BaseModel):
    matched: bool = Field(..., description="Whether the fuzzy preview found a close keyword")
    keyword: Optional[str] = None
    response: Optional[str] = None
    score: Optional[float] = Field(None, description="Similarity 0-100, higher is closer")
    # What the live chat would actually send for this message
    auto_reply_keyword: Optional[str] = None
    auto_reply_response: Optional[str] = None
