from pydantic import BaseModel, Field


class AutoReplyCreateRequest(BaseModel):
    keyword: str = Field(..., description="Text that triggers the reply when contained in a visitor message")
    response: str = Field(..., description="Canned reply sent to the visitor")


class AutoReplyTestRequest(BaseModel):
    message: str = Field(..., description="Sample visitor message to try against the rules")
