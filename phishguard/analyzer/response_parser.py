"""Parsing and validation of scoring replies."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Optional

from ..errors import ParseFailed
from .fallback_classifier import classify_reply_text
from .result_models import DEFAULT_SCORE, MAX_REASONS, ScanResult, clamp_score

logger = logging.getLogger(__name__)

DEFAULT_REASONING = ("Analysis completed",)
MAX_REASON_LENGTH = 300

CODE_FENCE_RE = re.compile(r"```(?:json|JSON)?")


def strip_wrappers(text: str) -> str:
    """Remove markdown code fences and surrounding whitespace."""
    return CODE_FENCE_RE.sub("", text or "").strip()


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` substring, honouring JSON strings."""
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]
    return None


def coerce_score(value: Any) -> int:
    """Integer score in [0, 100]; 50 when missing or not a number."""
    if value is None or isinstance(value, bool):
        return DEFAULT_SCORE
    # JSON integers can exceed float range.
    if isinstance(value, int):
        return clamp_score(value)
    if isinstance(value, str):
        value = value.strip().rstrip("%")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_SCORE
    if math.isnan(number) or math.isinf(number):
        return DEFAULT_SCORE
    return clamp_score(number)


def coerce_reasoning(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return DEFAULT_REASONING
    reasons = []
    for item in value:
        if not isinstance(item, str):
            continue
        cleaned = item.strip()
        if cleaned:
            reasons.append(cleaned[:MAX_REASON_LENGTH])
        if len(reasons) == MAX_REASONS:
            break
    return tuple(reasons) or DEFAULT_REASONING


def parse_structured_reply(raw_text: str) -> dict:
    """Extract the JSON object from a reply. Raises ParseFailed."""
    cleaned = strip_wrappers(raw_text)
    candidate = find_json_object(cleaned)
    if candidate is None:
        raise ParseFailed("no JSON object in reply")
    try:
        parsed = json.loads(candidate)
    except ValueError as e:
        raise ParseFailed(f"invalid JSON in reply: {e}") from e
    if not isinstance(parsed, dict):
        raise ParseFailed("reply JSON is not an object")
    return parsed


def parse_reply(raw_text: str, source_url: str, model_tier: Optional[str] = None) -> ScanResult:
    """Turn a raw reply into a ScanResult, falling back to lexical scoring."""
    try:
        parsed = parse_structured_reply(raw_text)
    except ParseFailed as e:
        logger.info(f"Structured parse failed for {source_url} ({e}); using lexical fallback")
        return classify_reply_text(raw_text, source_url)

    return ScanResult(
        legitimacy_score=coerce_score(parsed.get("legitimacyScore")),
        reasoning=coerce_reasoning(parsed.get("reasoning")),
        source_url=source_url,
        model_tier=model_tier,
        used_fallback_classifier=False,
    )
