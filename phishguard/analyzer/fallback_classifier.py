"""Last-resort lexical scorer for replies that could not be parsed."""

from __future__ import annotations

from typing import Optional

from .result_models import DEFAULT_SCORE, ScanResult

RISK_TERMS = ("phishing", "suspicious", "malicious")
TRUST_TERMS = ("legitimate", "safe", "trusted")

RISK_SCORE = 25
TRUST_SCORE = 65


def classify_reply_text(raw_text: Optional[str], source_url: str) -> ScanResult:
    """Coarse score from the reply's vocabulary. Risk terms win over trust terms."""
    lowered = (raw_text or "").lower()
    if any(term in lowered for term in RISK_TERMS):
        score = RISK_SCORE
        reasoning = ("Phishing indicators detected in content analysis",)
    elif any(term in lowered for term in TRUST_TERMS):
        score = TRUST_SCORE
        reasoning = ("Content appears legitimate based on analysis",)
    else:
        score = DEFAULT_SCORE
        reasoning = ("Automated analysis was inconclusive",)

    return ScanResult(
        legitimacy_score=score,
        reasoning=reasoning,
        source_url=source_url,
        model_tier=None,
        used_fallback_classifier=True,
    )
