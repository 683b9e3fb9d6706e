"""Feature extraction: turn a live page session into a PageSnapshot.

Three strategies are tried in strict order:

- primary: full signal set, body text capped at 5,000 characters
- fallback: reduced signal set, body text capped at 2,000 characters, no
  external-link counting and no redirect/content-flag analysis
- minimal: title/protocol/hostname from page metadata only, used when
  scripts cannot run or both script strategies failed

Only when minimal also fails is ``ExtractionFailed`` raised.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlparse

from ..errors import ExtractionFailed
from .content_flags import analyze_content_flags
from .extractor_scripts import (
    FALLBACK_BODY_LIMIT,
    FALLBACK_EXTRACTION_SCRIPT,
    MINIMAL_BODY_PLACEHOLDER,
    PRIMARY_BODY_LIMIT,
    PRIMARY_EXTRACTION_SCRIPT,
)
from .page_reader import PageReader
from .snapshot_models import (
    ExtractionStrategy,
    FormDescriptor,
    InputDescriptor,
    PageSnapshot,
    RedirectIndicators,
    SignalSet,
    UrlInfo,
)

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _parse_url_info(raw: Any) -> UrlInfo:
    data = raw if isinstance(raw, Mapping) else {}
    return UrlInfo(
        protocol=_as_str(data.get("protocol")),
        hostname=_as_str(data.get("hostname")),
        path=_as_str(data.get("path")),
        query=_as_str(data.get("query")),
        port=_as_str(data.get("port")),
        full_url=_as_str(data.get("fullUrl")),
    )


def _parse_forms(raw: Any) -> tuple[FormDescriptor, ...]:
    forms: list[FormDescriptor] = []
    for form in raw or []:
        if not isinstance(form, Mapping):
            continue
        inputs = tuple(
            InputDescriptor(
                type=_as_str(inp.get("type")),
                name=_as_str(inp.get("name")),
                required=bool(inp.get("required")),
            )
            for inp in form.get("inputs") or []
            if isinstance(inp, Mapping)
        )
        forms.append(
            FormDescriptor(
                action=_as_str(form.get("action")),
                method=_as_str(form.get("method")) or "get",
                inputs=inputs,
            )
        )
    return tuple(forms)


def _parse_signals(raw: Any, *, full: bool) -> SignalSet:
    data = raw if isinstance(raw, Mapping) else {}
    redirects = RedirectIndicators()
    if full:
        redirect_data = data.get("redirects")
        if isinstance(redirect_data, Mapping):
            refresh = redirect_data.get("refreshContent")
            redirects = RedirectIndicators(
                meta_refresh=bool(redirect_data.get("metaRefresh")),
                js_redirects=_as_int(redirect_data.get("jsRedirects")),
                refresh_content=_as_str(refresh) if refresh else None,
            )
    return SignalSet(
        iframes=_as_int(data.get("iframes")),
        external_links=_as_int(data.get("externalLinks")) if full else 0,
        sensitive_inputs=_as_int(data.get("sensitiveInputs")),
        https=bool(data.get("https")),
        has_login_form=bool(data.get("hasLoginForm")),
        popup_triggers=_as_int(data.get("popupTriggers")) if full else 0,
        redirects=redirects,
        hidden_elements=_as_int(data.get("hiddenElements")) if full else 0,
    )


def snapshot_from_primary(raw: Mapping) -> PageSnapshot:
    """Build a snapshot from the primary routine's raw result."""
    title = _as_str(raw.get("title"))
    body_text = _as_str(raw.get("bodyText"))[:PRIMARY_BODY_LIMIT]
    return PageSnapshot(
        title=title,
        description=_as_str(raw.get("description")),
        body_text=body_text,
        signals=_parse_signals(raw.get("signals"), full=True),
        url=_parse_url_info(raw.get("url")),
        forms=_parse_forms(raw.get("forms")),
        content_flags=analyze_content_flags(body_text, title),
        extraction_method=ExtractionStrategy.PRIMARY,
        language=_as_str(raw.get("language")),
    )


def snapshot_from_fallback(raw: Mapping) -> PageSnapshot:
    """Build a snapshot from the reduced routine; redirects/content flags are omitted."""
    return PageSnapshot(
        title=_as_str(raw.get("title")),
        description=_as_str(raw.get("description")),
        body_text=_as_str(raw.get("bodyText"))[:FALLBACK_BODY_LIMIT],
        signals=_parse_signals(raw.get("signals"), full=False),
        url=_parse_url_info(raw.get("url")),
        extraction_method=ExtractionStrategy.FALLBACK,
    )


def snapshot_from_metadata(metadata: Mapping) -> PageSnapshot:
    """Build a snapshot from page metadata alone (no script execution)."""
    url = _as_str(metadata.get("url"))
    if not url:
        raise ValueError("page metadata has no URL")
    parsed = urlparse(url)
    protocol = f"{parsed.scheme}:" if parsed.scheme else ""
    return PageSnapshot(
        title=_as_str(metadata.get("title")) or "Unknown",
        description="",
        body_text=MINIMAL_BODY_PLACEHOLDER,
        signals=SignalSet(https=parsed.scheme == "https"),
        url=UrlInfo(
            protocol=protocol,
            hostname=parsed.hostname or "",
            path=parsed.path,
            query=f"?{parsed.query}" if parsed.query else "",
            port=str(parsed.port) if parsed.port else "",
            full_url=url,
        ),
        extraction_method=ExtractionStrategy.MINIMAL,
    )


class FeatureExtractor:
    """Reads a page session through a ``PageReader``, stepping down strategies on failure."""

    def __init__(self, reader: PageReader):
        self.reader = reader

    async def extract(self, session_id: str) -> PageSnapshot:
        errors: list[str] = []

        if await self.reader.can_run_scripts(session_id):
            snapshot = await self._try_script(
                session_id,
                PRIMARY_EXTRACTION_SCRIPT,
                PRIMARY_BODY_LIMIT,
                snapshot_from_primary,
                ExtractionStrategy.PRIMARY,
                errors,
            )
            if snapshot:
                return snapshot

            snapshot = await self._try_script(
                session_id,
                FALLBACK_EXTRACTION_SCRIPT,
                FALLBACK_BODY_LIMIT,
                snapshot_from_fallback,
                ExtractionStrategy.FALLBACK,
                errors,
            )
            if snapshot:
                return snapshot
        else:
            logger.info(f"Scripts unavailable for session {session_id}; using page metadata only")

        try:
            metadata = await self.reader.page_metadata(session_id)
            if not isinstance(metadata, Mapping):
                raise ValueError("page metadata unavailable")
            return snapshot_from_metadata(metadata)
        except Exception as e:
            errors.append(f"minimal: {e}")
            logger.warning(f"All extraction strategies failed for {session_id}: {'; '.join(errors)}")
            raise ExtractionFailed("; ".join(errors)) from e

    async def _try_script(
        self,
        session_id: str,
        script: str,
        body_limit: int,
        build,
        strategy: ExtractionStrategy,
        errors: list[str],
    ) -> Optional[PageSnapshot]:
        try:
            raw = await self.reader.run_script(session_id, script, body_limit)
            if not raw or not isinstance(raw, Mapping):
                raise ValueError("extraction routine returned no data")
            return build(raw)
        except Exception as e:
            errors.append(f"{strategy.value}: {e}")
            logger.debug(f"{strategy.value} extraction failed for {session_id}: {e}")
            return None
