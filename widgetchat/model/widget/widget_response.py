from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class WidgetSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Widget identifier used by the embed tag")
    primary_color: str
    header_text: str
    welcome_message: str
    logo_url: Optional[str] = None


class WidgetResponse(WidgetSettingsResponse):
    account_id: str
    created_at: datetime
    updated_at: datetime
    embed_snippet: str = Field("", description="Script tag to paste into the business website")
