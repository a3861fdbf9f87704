"""Keyword matching for auto-replies.

``match`` is the authoritative decision used when a visitor message arrives:
a rule applies when its keyword is contained in the message, case-insensitively,
and the longest such keyword wins. Equal lengths fall back to the lowest rule
id so the result never depends on the order rules were loaded in.

``preview_match`` is a looser similarity search for the dashboard's "test"
box. It is never used to decide what gets sent to a visitor.
"""
from collections.abc import Iterable
from typing import NamedTuple, Optional, Protocol

from rapidfuzz import fuzz, process, utils

import widgetchat.config.config as configs


class Rule(Protocol):
    id: int
    keyword: str
    response: str


class PreviewResult(NamedTuple):
    rule: Rule
    score: float


def _contains(text: str, keyword: str) -> bool:
    return bool(keyword) and keyword.lower() in text


def match(message_text: str, rules: Iterable[Rule]) -> Optional[Rule]:
    if not message_text:
        return None
    text = message_text.lower()

    best: Optional[Rule] = None
    for rule in rules:
        keyword = (rule.keyword or "").strip()
        if not _contains(text, keyword):
            continue
        if best is None:
            best = rule
            continue
        best_len = len(best.keyword.strip())
        if len(keyword) > best_len or (len(keyword) == best_len and rule.id < best.id):
            best = rule
    return best


def preview_match(
    message_text: str,
    rules: Iterable[Rule],
    score_cutoff: Optional[float] = None,
) -> Optional[PreviewResult]:
    if not message_text or not message_text.strip():
        return None
    by_id = {rule.id: rule for rule in rules if (rule.keyword or "").strip()}
    if not by_id:
        return None

    cutoff = configs.PREVIEW_SCORE_CUTOFF if score_cutoff is None else score_cutoff
    best = process.extractOne(
        message_text,
        {rule_id: rule.keyword for rule_id, rule in by_id.items()},
        scorer=fuzz.WRatio,
        processor=utils.default_process,
        score_cutoff=cutoff,
    )
    if best is None:
        return None
    _, score, rule_id = best
    return PreviewResult(rule=by_id[rule_id], score=float(score))
