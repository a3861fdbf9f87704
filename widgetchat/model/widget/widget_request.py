from pydantic import BaseModel, Field
from typing import Optional


class WidgetUpdateRequest(BaseModel):
    primary_color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$", description="Hex color used for header and buttons")
    header_text: Optional[str] = Field(None, description="Text shown in the widget header")
    welcome_message: Optional[str] = Field(None, description="Greeting posted when a conversation starts")
    logo_url: Optional[str] = Field(None, description="Public URL of the logo shown in the header")
