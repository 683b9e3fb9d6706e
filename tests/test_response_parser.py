"""Tests for reply parsing and the lexical fallback classifier."""

import pytest

from phishguard.analyzer.fallback_classifier import classify_reply_text
from phishguard.analyzer.response_parser import (
    coerce_reasoning,
    coerce_score,
    find_json_object,
    parse_reply,
    parse_structured_reply,
)
from phishguard.errors import ParseFailed

URL = "https://example.com/"


def test_well_formed_reply():
    result = parse_reply('{"legitimacyScore": 72, "reasoning": ["a", "b"]}', URL, "flash")
    assert result.legitimacy_score == 72
    assert result.reasoning == ("a", "b")
    assert result.source_url == URL
    assert result.model_tier == "flash"
    assert result.used_fallback_classifier is False


@pytest.mark.parametrize("raw,expected", [(-5, 0), (140, 100), (72.6, 73), ("88", 88), ("45%", 45)])
def test_scores_are_clamped_and_rounded(raw, expected):
    assert coerce_score(raw) == expected


def test_integers_beyond_float_range_are_clamped():
    result = parse_reply('{"legitimacyScore": ' + "9" * 400 + ', "reasoning": ["x"]}', URL, "flash")
    assert result.legitimacy_score == 100
    assert result.used_fallback_classifier is False
    assert coerce_score(-(10 ** 400)) == 0


def test_integer_too_long_to_decode_falls_back():
    result = parse_reply('{"legitimacyScore": ' + "9" * 5000 + "}", URL, "flash")
    assert result.used_fallback_classifier is True
    assert 0 <= result.legitimacy_score <= 100


@pytest.mark.parametrize("raw", [None, True, "high", float("nan"), [], {}])
def test_unusable_scores_default_to_fifty(raw):
    assert coerce_score(raw) == 50


def test_reply_wrapped_in_code_fence_and_prose():
    raw = 'Here you go:\n```json\n{"legitimacyScore": 15, "reasoning": ["Fake login"]}\n```\nThanks'
    result = parse_reply(raw, URL)
    assert result.legitimacy_score == 15
    assert result.reasoning == ("Fake login",)
    assert not result.used_fallback_classifier


def test_braces_inside_strings_do_not_end_the_object():
    raw = '{"legitimacyScore": 40, "reasoning": ["Form posts to {unknown} host", "Escaped \\" quote }"]} trailing }'
    assert find_json_object(raw).endswith('quote }"]}')
    result = parse_reply(raw, URL)
    assert result.legitimacy_score == 40
    assert result.reasoning[0] == "Form posts to {unknown} host"


def test_reasoning_is_capped_and_filtered():
    assert coerce_reasoning(["a", "", 3, "b", "c", "d"]) == ("a", "b", "c")
    assert coerce_reasoning("not a list") == ("Analysis completed",)
    assert coerce_reasoning([]) == ("Analysis completed",)
    assert len(coerce_reasoning(["x" * 1000])[0]) == 300


def test_missing_fields_get_defaults():
    result = parse_reply("{}", URL)
    assert result.legitimacy_score == 50
    assert result.reasoning == ("Analysis completed",)
    assert not result.used_fallback_classifier


@pytest.mark.parametrize("raw", ["no json here", "{not json}", "[1, 2]", ""])
def test_structured_parse_failures(raw):
    with pytest.raises(ParseFailed):
        parse_structured_reply(raw)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("This page looks like phishing.", 25),
        ("The site is legitimate and safe.", 65),
        ("Suspicious but also looks legitimate", 25),
        ("no json here", 50),
        ("", 50),
    ],
)
def test_unparseable_reply_uses_lexical_fallback(raw, expected):
    result = parse_reply(raw, URL, "flash")
    assert result.legitimacy_score == expected
    assert result.used_fallback_classifier is True
    assert result.model_tier is None
    assert len(result.reasoning) == 1


def test_fallback_classifier_handles_none():
    result = classify_reply_text(None, URL)
    assert result.legitimacy_score == 50
    assert result.source_url == URL
