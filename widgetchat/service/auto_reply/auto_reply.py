import csv
import io
import logging

from widgetchat.errors import NotFoundError, ValidationError
from widgetchat.model.auto_reply.auto_reply_request import AutoReplyCreateRequest, AutoReplyTestRequest
from widgetchat.model.auto_reply.auto_reply_response import (
    AutoReplyImportResponse,
    AutoReplyResponse,
    AutoReplyTestResponse,
)
from widgetchat.service.matcher.matcher import match, preview_match
from widgetchat.service.store.rules import create_rule, create_rules, delete_rule, list_rules
from widgetchat.service.store.widgets import get_widget

logger = logging.getLogger(__name__)

CSV_HEADERS = ("Keyword", "Response")


def _require_widget(widget_id: str) -> None:
    if get_widget(widget_id) is None:
        raise NotFoundError(f"widget {widget_id} not found")


def list_auto_replies(widget_id: str) -> list[AutoReplyResponse]:
    _require_widget(widget_id)
    return [AutoReplyResponse.model_validate(rule) for rule in list_rules(widget_id)]


def add_auto_reply(widget_id: str, req: AutoReplyCreateRequest) -> AutoReplyResponse:
    rule = create_rule(widget_id, req.keyword, req.response)
    return AutoReplyResponse.model_validate(rule)


def remove_auto_reply(widget_id: str, rule_id: int) -> None:
    delete_rule(rule_id, widget_id=widget_id)


def parse_rules_csv(text: str) -> list[tuple[str, str]]:
    """Read (keyword, response) pairs from a CSV with keyword/response headers.

    Rows missing either value are skipped. Columns are located by header name,
    case-insensitively, so extra columns are ignored.
    """
    reader = csv.reader(io.StringIO(text or ""))
    headers = next(reader, None)
    if not headers:
        raise ValidationError("Invalid CSV format. Please use the template provided.")

    normalized = [h.strip().lower() for h in headers]
    if "keyword" not in normalized or "response" not in normalized:
        raise ValidationError("Invalid CSV format. Please use the template provided.")
    keyword_idx = normalized.index("keyword")
    response_idx = normalized.index("response")

    pairs: list[tuple[str, str]] = []
    for row in reader:
        if len(row) <= max(keyword_idx, response_idx):
            continue
        keyword = row[keyword_idx].strip()
        response = row[response_idx].strip()
        if keyword and response:
            pairs.append((keyword, response))

    if not pairs:
        raise ValidationError("No valid data found in the CSV file.")
    return pairs


def import_auto_replies(widget_id: str, text: str) -> AutoReplyImportResponse:
    _require_widget(widget_id)
    pairs = parse_rules_csv(text)
    created = create_rules(widget_id, pairs)
    logger.info("imported %s auto replies widget=%s", len(created), widget_id)
    return AutoReplyImportResponse(
        imported=len(created),
        auto_replies=[AutoReplyResponse.model_validate(rule) for rule in created],
    )


def export_auto_replies(widget_id: str) -> str:
    _require_widget(widget_id)
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for rule in list_rules(widget_id):
        writer.writerow((rule.keyword, rule.response))
    return buffer.getvalue()


def preview_auto_reply(widget_id: str, req: AutoReplyTestRequest) -> AutoReplyTestResponse:
    """Preview which rule a message would hit.

    ``keyword``/``response``/``score`` come from the fuzzy preview, which
    tolerates typos. ``auto_reply_*`` is what the live chat would really send.
    """
    _require_widget(widget_id)
    rules = list_rules(widget_id)

    live = match(req.message, rules)
    preview = preview_match(req.message, rules)

    result = AutoReplyTestResponse(matched=preview is not None)
    if preview is not None:
        result.keyword = preview.rule.keyword
        result.response = preview.rule.response
        result.score = preview.score
    if live is not None:
        result.auto_reply_keyword = live.keyword
        result.auto_reply_response = live.response
    return result
