import logging
from typing import Any

from sqlalchemy import select

from widgetchat.client.db.psql import session_scope
from widgetchat.db.models.widget import Widget
from widgetchat.errors import NotFoundError

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("primary_color", "header_text", "welcome_message", "logo_url")


def get_widget(widget_id: str) -> Widget | None:
    with session_scope() as db:
        return db.get(Widget, widget_id)


def get_or_create_widget(account_id: str) -> Widget:
    with session_scope() as db:
        widget = db.execute(select(Widget).where(Widget.account_id == account_id)).scalar_one_or_none()
        if widget is not None:
            return widget
        widget = Widget(account_id=account_id)
        db.add(widget)
        db.flush()
        logger.info("created widget=%s for account=%s", widget.id, account_id)
        return widget


def update_widget(widget_id: str, fields: dict[str, Any]) -> Widget:
    with session_scope() as db:
        widget = db.get(Widget, widget_id)
        if widget is None:
            raise NotFoundError(f"widget {widget_id} not found")
        for name, value in fields.items():
            if name in _EDITABLE_FIELDS:
                setattr(widget, name, value)
        db.flush()
        return widget
