"""Analyzer modules for PhishGuard."""

from .extractor import FeatureExtractor
from .invoker import ModelInvoker
from .page_reader import PageReader, PlaywrightPageReader
from .prompt import build_prompt
from .response_parser import parse_reply
from .result_models import ScanResult
from .snapshot_models import PageSnapshot
from .tiers import ModelTier, TierChain
from .verdict import Band, ThresholdConfig, classify

__all__ = [
    "FeatureExtractor",
    "ModelInvoker",
    "PageReader",
    "PlaywrightPageReader",
    "build_prompt",
    "parse_reply",
    "ScanResult",
    "PageSnapshot",
    "ModelTier",
    "TierChain",
    "Band",
    "ThresholdConfig",
    "classify",
]
