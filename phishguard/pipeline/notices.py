"""Outbound notices from the detection pipeline to the presentation layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Union

from ..analyzer.result_models import ScanResult
from ..analyzer.snapshot_models import ExtractionStrategy
from ..analyzer.tiers import ModelTier
from ..analyzer.verdict import Band
from .requests import TriggerSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelTierChanged:
    session_id: str
    from_tier: ModelTier
    to_tier: ModelTier

    @property
    def message(self) -> str:
        return f"{self.from_tier.label} unavailable, switching to {self.to_tier.label}"


@dataclass(frozen=True)
class ScanCompleted:
    session_id: str
    result: ScanResult
    band: Band
    trigger: TriggerSurface


@dataclass(frozen=True)
class ExtractionDegraded:
    session_id: str
    strategy: ExtractionStrategy


Notice = Union[ModelTierChanged, ScanCompleted, ExtractionDegraded]


def notice_to_dict(notice: Notice) -> dict:
    if isinstance(notice, ModelTierChanged):
        return {
            "type": "modelTierChanged",
            "fromTier": notice.from_tier.key,
            "toTier": notice.to_tier.key,
            "message": notice.message,
        }
    if isinstance(notice, ScanCompleted):
        return {
            "type": "scanCompleted",
            "result": notice.result.to_dict(),
            "band": notice.band.value,
            "trigger": notice.trigger.value,
        }
    return {"type": "extractionDegraded", "strategy": notice.strategy.value}


class NoticeSink(Protocol):
    def publish(self, notice: Notice) -> None:
        ...


class LoggingNoticeSink:
    """Default sink: notices only go to the log."""

    def publish(self, notice: Notice) -> None:
        if isinstance(notice, ModelTierChanged):
            logger.info(f"[{notice.session_id}] {notice.message}")
        elif isinstance(notice, ScanCompleted):
            logger.info(
                f"[{notice.session_id}] Scan completed: {notice.band.label} "
                f"(score {notice.result.legitimacy_score}, trigger {notice.trigger.value})"
            )
        elif isinstance(notice, ExtractionDegraded):
            logger.info(f"[{notice.session_id}] Page read with {notice.strategy.value} extraction")


class CollectingNoticeSink:
    """Keeps notices in memory, in publish order."""

    def __init__(self):
        self.notices: list[Notice] = []

    def publish(self, notice: Notice) -> None:
        self.notices.append(notice)

    def of_type(self, kind: type) -> list:
        return [n for n in self.notices if isinstance(n, kind)]
