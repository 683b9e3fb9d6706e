"""Threshold banding of legitimacy scores."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .result_models import clamp_score

logger = logging.getLogger(__name__)

SAFE_MIN, SAFE_MAX = 70, 95
CAUTION_MIN, CAUTION_MAX = 30, 70
MIN_SEPARATION = 10
DEFAULT_SAFE = 80
DEFAULT_CAUTION = 50


class Band(str, Enum):
    """Risk band shown to the user."""

    LEGITIMATE = "legitimate"
    UNCERTAIN = "uncertain"
    PHISHING = "phishing"

    @property
    def label(self) -> str:
        return self.value.capitalize()


def _bound(value: int, low: int, high: int) -> int:
    return max(low, min(high, int(value)))


@dataclass(frozen=True)
class ThresholdConfig:
    """Safe/caution thresholds. Always at least 10 points apart."""

    safe: int = DEFAULT_SAFE
    caution: int = DEFAULT_CAUTION

    def __post_init__(self):
        safe, caution = self._normalize(self.safe, self.caution, keep="caution")
        object.__setattr__(self, "safe", safe)
        object.__setattr__(self, "caution", caution)

    @staticmethod
    def _normalize(safe: int, caution: int, *, keep: str) -> tuple[int, int]:
        """Bound both values and restore the separation by moving the one not kept."""
        safe = _bound(safe, SAFE_MIN, SAFE_MAX)
        caution = _bound(caution, CAUTION_MIN, CAUTION_MAX)
        if safe - caution >= MIN_SEPARATION:
            return safe, caution
        if keep == "safe":
            caution = _bound(safe - MIN_SEPARATION, CAUTION_MIN, CAUTION_MAX)
        else:
            safe = _bound(caution + MIN_SEPARATION, SAFE_MIN, SAFE_MAX)
        return safe, caution

    def update(self, *, safe: Optional[int] = None, caution: Optional[int] = None) -> "ThresholdConfig":
        """Return a new config with the requested values, clamped to stay valid.

        A caution edit that crowds safe is pulled back to ``safe - 10``; a
        safe edit (or both) that crowds caution is pushed up to
        ``caution + 10``.
        """
        new_safe = self.safe if safe is None else safe
        new_caution = self.caution if caution is None else caution
        keep = "safe" if caution is not None and safe is None else "caution"
        fixed_safe, fixed_caution = self._normalize(new_safe, new_caution, keep=keep)
        if (fixed_safe, fixed_caution) != (
            _bound(new_safe, SAFE_MIN, SAFE_MAX),
            _bound(new_caution, CAUTION_MIN, CAUTION_MAX),
        ):
            logger.info(
                f"Threshold update safe={new_safe} caution={new_caution} clamped to "
                f"safe={fixed_safe} caution={fixed_caution}"
            )
        return ThresholdConfig(safe=fixed_safe, caution=fixed_caution)

    def to_dict(self) -> dict:
        return {"safeThreshold": self.safe, "cautionThreshold": self.caution}


def classify(score: int, thresholds: ThresholdConfig) -> Band:
    """Map a score to exactly one band under the given thresholds."""
    value = clamp_score(score)
    if value >= thresholds.safe:
        return Band.LEGITIMATE
    if value >= thresholds.caution:
        return Band.UNCERTAIN
    return Band.PHISHING
