"""Scan result data model."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional

SCORE_MIN = 0
SCORE_MAX = 100
DEFAULT_SCORE = 50
MAX_REASONS = 3


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into [0, 100]."""
    return int(max(SCORE_MIN, min(SCORE_MAX, round(value))))


@dataclass(frozen=True)
class ScanResult:
    """Outcome of one scan. Superseded by later scans, never mutated."""

    legitimacy_score: int
    reasoning: tuple[str, ...]
    source_url: str
    timestamp: float = field(default_factory=time.time)
    model_tier: Optional[str] = None
    used_fallback_classifier: bool = False

    def __post_init__(self):
        object.__setattr__(self, "legitimacy_score", clamp_score(self.legitimacy_score))
        object.__setattr__(self, "reasoning", tuple(self.reasoning)[:MAX_REASONS])

    def to_dict(self) -> dict[str, Any]:
        return {
            "legitimacyScore": self.legitimacy_score,
            "reasoning": list(self.reasoning),
            "sourceUrl": self.source_url,
            "timestamp": self.timestamp,
            "modelTierUsed": self.model_tier,
            "usedFallbackClassifier": self.used_fallback_classifier,
        }
