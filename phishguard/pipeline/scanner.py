"""Scan pipeline: extraction, prompting, scoring, parsing, banding, caching."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from ..analyzer.extractor import FeatureExtractor
from ..analyzer.invoker import DEFAULT_TIMEOUT_SECONDS, GEMINI_BASE_URL, ModelInvoker
from ..analyzer.page_reader import PageReader
from ..analyzer.prompt import build_prompt
from ..analyzer.response_parser import parse_reply
from ..analyzer.result_models import ScanResult
from ..analyzer.snapshot_models import ExtractionStrategy, PageSnapshot
from ..analyzer.tiers import ModelTier, TierChain
from ..analyzer.verdict import Band, classify
from ..config import Settings, validate_api_key
from ..errors import PhishGuardError, UnscannablePage
from ..session_store import ScanSessionStore
from ..utils.domains import is_scannable_url, is_suspicious_domain
from .notices import (
    ExtractionDegraded,
    LoggingNoticeSink,
    ModelTierChanged,
    Notice,
    NoticeSink,
    ScanCompleted,
)
from .requests import TriggerSurface

logger = logging.getLogger(__name__)

InvokerFactory = Callable[[str, TierChain], ModelInvoker]


class ScanPipeline:
    """Coordinates one scan end to end and owns the session store."""

    def __init__(
        self,
        reader: PageReader,
        settings: Settings,
        *,
        store: Optional[ScanSessionStore] = None,
        sink: Optional[NoticeSink] = None,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        invoker_factory: Optional[InvokerFactory] = None,
    ):
        self.reader = reader
        self.settings = settings
        self.store = store or ScanSessionStore()
        self.sink = sink or LoggingNoticeSink()
        self.extractor = FeatureExtractor(reader)
        self._invoker_factory = invoker_factory or (
            lambda api_key, chain: ModelInvoker(api_key, chain, base_url=base_url, timeout=timeout)
        )
        # Bumped on navigation while a scan is in flight so its result for the old page is not cached.
        # Entries live only as long as the session has scans running.
        self._generations: dict[str, int] = {}
        self._in_flight: dict[str, int] = {}
        self._generation_lock = threading.Lock()

    def _publish(self, notice: Notice, extra: Optional[NoticeSink] = None) -> None:
        for sink in (self.sink, extra):
            if sink is None:
                continue
            try:
                sink.publish(notice)
            except Exception as e:
                logger.warning(f"Notice sink failed for {type(notice).__name__}: {e}")

    def _generation(self, session_id: str) -> int:
        with self._generation_lock:
            return self._generations.get(session_id, 0)

    def _begin_scan(self, session_id: str) -> int:
        with self._generation_lock:
            self._in_flight[session_id] = self._in_flight.get(session_id, 0) + 1
            return self._generations.get(session_id, 0)

    def _end_scan(self, session_id: str) -> None:
        with self._generation_lock:
            remaining = self._in_flight.get(session_id, 0) - 1
            if remaining > 0:
                self._in_flight[session_id] = remaining
            else:
                self._in_flight.pop(session_id, None)
                self._generations.pop(session_id, None)

    def _bump_generation(self, session_id: str) -> None:
        with self._generation_lock:
            if session_id in self._in_flight:
                self._generations[session_id] = self._generations.get(session_id, 0) + 1

    async def get_page_content(
        self,
        session_id: str,
        *,
        notices: Optional[NoticeSink] = None,
    ) -> PageSnapshot:
        """Read the page. Raises ExtractionFailed when every strategy failed."""
        snapshot = await self.extractor.extract(session_id)
        if snapshot.extraction_method != ExtractionStrategy.PRIMARY:
            logger.info(f"Extraction degraded to {snapshot.extraction_method.value} for {session_id}")
            self._publish(ExtractionDegraded(session_id, snapshot.extraction_method), notices)
        return snapshot

    async def scan_page(
        self,
        session_id: str,
        url: str,
        trigger: TriggerSurface = TriggerSurface.MANUAL,
        *,
        snapshot: Optional[PageSnapshot] = None,
        notices: Optional[NoticeSink] = None,
    ) -> ScanResult:
        """Run one scan. Only fatal PhishGuardErrors escape.

        A snapshot already read by the host is scored as-is; otherwise the
        page is read through the extractor first.
        """
        api_key = validate_api_key(self.settings.api_key)
        if not is_scannable_url(url):
            raise UnscannablePage(f"Unscannable URL: {url!r}")

        generation = self._begin_scan(session_id)
        try:
            result = await self._score(session_id, url, api_key, generation, snapshot, notices)
        finally:
            self._end_scan(session_id)

        band = self.band_for(result)
        self._publish(ScanCompleted(session_id, result, band, trigger), notices)
        logger.info(
            f"Scanned {result.source_url}: score={result.legitimacy_score} band={band.value} "
            f"tier={result.model_tier} fallback={result.used_fallback_classifier}"
        )
        return result

    async def _score(
        self,
        session_id: str,
        url: str,
        api_key: str,
        generation: int,
        snapshot: Optional[PageSnapshot],
        notices: Optional[NoticeSink],
    ) -> ScanResult:
        chain = self.settings.chain
        try:
            if snapshot is None:
                snapshot = await self.get_page_content(session_id, notices=notices)
            domain_suspicious = is_suspicious_domain(url)
            prompt = build_prompt(snapshot, domain_suspicious)

            def on_tier_change(from_tier: ModelTier, to_tier: ModelTier, error: Exception) -> None:
                self._publish(ModelTierChanged(session_id, from_tier, to_tier), notices)

            invoker = self._invoker_factory(api_key, chain)
            outcome = await invoker.invoke(prompt, on_tier_change=on_tier_change)
        except PhishGuardError as e:
            logger.warning(f"Scan of {url} ({session_id}) failed: {e.code}: {e}")
            raise

        source_url = snapshot.url.full_url or url
        result = parse_reply(outcome.text, source_url, outcome.tier.key)

        if self._generation(session_id) == generation:
            self.store.put(session_id, result)
        else:
            logger.info(f"Session {session_id} navigated during scan; result not cached")
        return result

    def band_for(self, result: ScanResult) -> Band:
        """Band under the live thresholds; recomputed on every call."""
        return classify(result.legitimacy_score, self.settings.thresholds)

    def cached_result(self, session_id: str) -> Optional[ScanResult]:
        return self.store.get(session_id)

    def handle_navigation(self, session_id: str, new_url: str = "") -> bool:
        """Top-level location changed: the cached result no longer applies."""
        self._bump_generation(session_id)
        removed = self.store.invalidate(session_id)
        logger.debug(f"Session {session_id} navigated to {new_url or '(unknown)'}; invalidated={removed}")
        return removed

    def forget_session(self, session_id: str) -> None:
        """Session closed for good."""
        self.store.invalidate(session_id)
        self._bump_generation(session_id)
