from typing import List

from fastapi import APIRouter, Request, Response, status

from widgetchat.api.v1.ws import ws_router
from widgetchat.model.auto_reply.auto_reply_request import AutoReplyCreateRequest, AutoReplyTestRequest
from widgetchat.model.auto_reply.auto_reply_response import (
    AutoReplyImportResponse,
    AutoReplyResponse,
    AutoReplyTestResponse,
)
from widgetchat.model.chat.chat_request import (
    BusinessMessageRequest,
    IdentifyRequest,
    SessionRequest,
    TypingRequest,
    VisitorMessageRequest,
)
from widgetchat.model.chat.chat_response import (
    ConversationResponse,
    IdentifyResponse,
    MessageResponse,
    SessionResponse,
    VisitorMessageResponse,
)
from widgetchat.model.widget.widget_request import WidgetUpdateRequest
from widgetchat.model.widget.widget_response import WidgetResponse, WidgetSettingsResponse
from widgetchat.service.auto_reply.auto_reply import (
    add_auto_reply,
    export_auto_replies,
    import_auto_replies,
    list_auto_replies,
    preview_auto_reply,
    remove_auto_reply,
)
from widgetchat.service.chat.chat import (
    get_conversations,
    get_history,
    identify,
    resume_or_create,
    send_business_message,
    send_visitor_message,
    signal_typing,
)
from widgetchat.service.widget.widget import get_account_widget, get_public_settings, update_widget_settings

api_router = APIRouter()
api_router.include_router(ws_router)


# === Widget ===
@api_router.get("/accounts/{account_id}/widget", response_model=WidgetResponse)
def account_widget(account_id: str):
    return get_account_widget(account_id)


@api_router.patch("/widgets/{widget_id}", response_model=WidgetResponse)
def widget_update(widget_id: str, req: WidgetUpdateRequest):
    return update_widget_settings(widget_id, req)


@api_router.get("/widgets/{widget_id}/settings", response_model=WidgetSettingsResponse)
def widget_settings(widget_id: str):
    return get_public_settings(widget_id)


# === Auto replies ===
@api_router.get("/widgets/{widget_id}/auto-replies", response_model=List[AutoReplyResponse])
def auto_reply_list(widget_id: str):
    return list_auto_replies(widget_id)


@api_router.post("/widgets/{widget_id}/auto-replies", response_model=AutoReplyResponse, status_code=status.HTTP_201_CREATED)
def auto_reply_create(widget_id: str, req: AutoReplyCreateRequest):
    return add_auto_reply(widget_id, req)


@api_router.delete("/widgets/{widget_id}/auto-replies/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def auto_reply_delete(widget_id: str, rule_id: int):
    remove_auto_reply(widget_id, rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api_router.post("/widgets/{widget_id}/auto-replies/import", response_model=AutoReplyImportResponse)
async def auto_reply_import(widget_id: str, request: Request):
    body = await request.body()
    return import_auto_replies(widget_id, body.decode("utf-8-sig", errors="replace"))


@api_router.get("/widgets/{widget_id}/auto-replies/export")
def auto_reply_export(widget_id: str):
    return Response(
        content=export_auto_replies(widget_id),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="auto-replies.csv"'},
    )


@api_router.post("/widgets/{widget_id}/auto-replies/test", response_model=AutoReplyTestResponse)
def auto_reply_test(widget_id: str, req: AutoReplyTestRequest):
    return preview_auto_reply(widget_id, req)


# === Visitor ===
@api_router.post("/widgets/{widget_id}/sessions", response_model=SessionResponse)
def session_start(widget_id: str, req: SessionRequest):
    return resume_or_create(widget_id, req.session_token)


@api_router.post("/sessions/{session_token}/messages", response_model=VisitorMessageResponse)
async def visitor_message(session_token: str, req: VisitorMessageRequest):
    return await send_visitor_message(session_token, req.content, req.page_url)


@api_router.post("/sessions/{session_token}/identify", response_model=IdentifyResponse)
async def visitor_identify(session_token: str, req: IdentifyRequest):
    return await identify(session_token, req.name, req.email)


# === Dashboard ===
@api_router.get("/widgets/{widget_id}/chats", response_model=List[ConversationResponse])
def chat_list(widget_id: str):
    return get_conversations(widget_id)


@api_router.get("/chats/{chat_id}/messages", response_model=List[MessageResponse])
def chat_history(chat_id: str):
    return get_history(chat_id)


@api_router.post("/chats/{chat_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def chat_reply(chat_id: str, req: BusinessMessageRequest):
    return await send_business_message(chat_id, req.content)


# === Typing ===
@api_router.post("/chats/{chat_id}/typing")
async def chat_typing(chat_id: str, req: TypingRequest):
    delivered = signal_typing(chat_id, req.sender_type)
    return {"status": "ok", "delivered": delivered}
