"""Lexical content flags computed from visible page text."""

from __future__ import annotations

from .snapshot_models import ContentFlags

URGENCY_TERMS = [
    "urgent",
    "immediate",
    "expire",
    "suspend",
    "verify",
    "confirm",
    "update",
    "secure",
    "alert",
    "warning",
    "limited time",
    "act now",
]

SCAM_PHRASES = [
    "click here",
    "verify account",
    "confirm identity",
    "update payment",
    "suspended account",
    "unusual activity",
    "security alert",
    "winner",
    "congratulations",
    "prize",
    "lottery",
]

THREAT_TERMS = [
    "close account",
    "legal action",
    "penalty",
    "fine",
    "restricted",
    "locked",
    "blocked",
]

KNOWN_MISSPELLINGS = [
    "amazom",
    "gogle",
    "microsooft",
    "facbook",
    "bankk",
    "securee",
    "varify",
    "acount",
    "recieve",
]

CAPS_RATIO_LIMIT = 0.1
EXCLAMATION_LIMIT = 5


def _count_terms(text: str, terms: list[str]) -> int:
    return sum(1 for term in terms if term in text)


def has_known_misspelling(text: str) -> bool:
    lowered = (text or "").lower()
    return any(word in lowered for word in KNOWN_MISSPELLINGS)


def analyze_content_flags(body_text: str, title: str) -> ContentFlags:
    """Count urgency/scam/threat vocabulary and flag shouting or misspellings.

    Capitalization is measured on the original text; term matching is
    case-insensitive.
    """
    text = f"{body_text or ''} {title or ''}"
    lowered = text.lower()

    upper_count = sum(1 for ch in text if ch.isupper())
    return ContentFlags(
        urgency_terms=_count_terms(lowered, URGENCY_TERMS),
        scam_phrases=_count_terms(lowered, SCAM_PHRASES),
        threat_terms=_count_terms(lowered, THREAT_TERMS),
        excessive_caps=upper_count > len(text) * CAPS_RATIO_LIMIT,
        excessive_exclamation=text.count("!") > EXCLAMATION_LIMIT,
        known_misspellings=has_known_misspelling(lowered),
    )
