from collections.abc import Iterable

from sqlalchemy import select

from widgetchat.client.db.psql import session_scope
from widgetchat.db.models.auto_reply import AutoReply
from widgetchat.db.models.widget import Widget
from widgetchat.errors import NotFoundError, ValidationError


def _clean_pair(keyword: str, response: str) -> tuple[str, str]:
    keyword = (keyword or "").strip()
    response = (response or "").strip()
    if not keyword or not response:
        raise ValidationError("Both keyword and response are required.")
    return keyword, response


def list_rules(widget_id: str) -> list[AutoReply]:
    """Return every rule of a widget, newest first, read in one query."""
    with session_scope() as db:
        rows = db.execute(
            select(AutoReply)
            .where(AutoReply.widget_id == widget_id)
            .order_by(AutoReply.created_at.desc(), AutoReply.id.desc())
        ).scalars()
        return list(rows)


def create_rule(widget_id: str, keyword: str, response: str) -> AutoReply:
    return create_rules(widget_id, [(keyword, response)])[0]


def create_rules(widget_id: str, pairs: Iterable[tuple[str, str]]) -> list[AutoReply]:
    """Insert rules in a single transaction: either all are stored or none."""
    cleaned = [_clean_pair(keyword, response) for keyword, response in pairs]
    if not cleaned:
        raise ValidationError("No rules to create.")
    with session_scope() as db:
        widget = db.get(Widget, widget_id)
        if widget is None:
            raise NotFoundError(f"widget {widget_id} not found")
        created = [
            AutoReply(widget_id=widget.id, account_id=widget.account_id, keyword=keyword, response=response)
            for keyword, response in cleaned
        ]
        db.add_all(created)
        db.flush()
        return created


def delete_rule(rule_id: int, widget_id: str | None = None) -> None:
    with session_scope() as db:
        rule = db.get(AutoReply, rule_id)
        if rule is None or (widget_id is not None and rule.widget_id != widget_id):
            raise NotFoundError(f"auto reply {rule_id} not found")
        db.delete(rule)
