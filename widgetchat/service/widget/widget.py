from html import escape

import widgetchat.config.config as configs
from widgetchat.db.models.widget import Widget
from widgetchat.errors import NotFoundError, ValidationError
from widgetchat.model.widget.widget_request import WidgetUpdateRequest
from widgetchat.model.widget.widget_response import WidgetResponse, WidgetSettingsResponse
from widgetchat.service.store.widgets import get_or_create_widget, get_widget, update_widget

_REQUIRED_TEXT_FIELDS = ("header_text", "welcome_message")


def embed_snippet(widget_id: str) -> str:
    src = escape(configs.WIDGET_LOADER_URL, quote=True)
    uid = escape(widget_id, quote=True)
    return f'<script src="{src}" data-uid="{uid}" async></script>'


def _widget_response(widget: Widget) -> WidgetResponse:
    response = WidgetResponse.model_validate(widget)
    response.embed_snippet = embed_snippet(widget.id)
    return response


def get_account_widget(account_id: str) -> WidgetResponse:
    account_id = (account_id or "").strip()
    if not account_id:
        raise ValidationError("account id is required")
    return _widget_response(get_or_create_widget(account_id))


def update_widget_settings(widget_id: str, req: WidgetUpdateRequest) -> WidgetResponse:
    fields = req.model_dump(exclude_unset=True)
    if fields.get("primary_color") is None:
        fields.pop("primary_color", None)
    for name in _REQUIRED_TEXT_FIELDS:
        if name in fields:
            value = (fields[name] or "").strip()
            if not value:
                raise ValidationError(f"{name} must not be empty")
            fields[name] = value
    if "logo_url" in fields:
        fields["logo_url"] = (fields["logo_url"] or "").strip() or None
    return _widget_response(update_widget(widget_id, fields))


def get_public_settings(widget_id: str) -> WidgetSettingsResponse:
    widget = get_widget(widget_id)
    if widget is None:
        raise NotFoundError(f"widget {widget_id} not found")
    return WidgetSettingsResponse.model_validate(widget)
