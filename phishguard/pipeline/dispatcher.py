"""Dispatch of host requests to pipeline handlers.

Requests form a closed set of types. Each type maps to one handler in
``RequestDispatcher.handlers``; fatal pipeline errors come back as an
``ErrorReport`` carrying only the short user-facing message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ..analyzer.result_models import ScanResult
from ..analyzer.snapshot_models import PageSnapshot
from ..analyzer.verdict import Band
from ..errors import PhishGuardError, UnknownRequest
from .notices import NoticeSink
from .requests import (
    ErrorReport,
    GetPageContentRequest,
    HostRequest,
    ScanPageRequest,
    TriggerSurface,
    UrlChangedRequest,
)
from .scanner import ScanPipeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanReply:
    result: ScanResult
    band: Band

    def to_dict(self) -> dict:
        return {"result": self.result.to_dict(), "band": self.band.value}


@dataclass(frozen=True)
class PageContentReply:
    content: PageSnapshot

    def to_dict(self) -> dict:
        return {"content": self.content.to_dict()}


@dataclass(frozen=True)
class NavigationReply:
    invalidated: bool

    def to_dict(self) -> dict:
        return {"invalidated": self.invalidated}


Reply = Union[ScanReply, PageContentReply, NavigationReply, ErrorReport]


def request_from_message(message: Mapping[str, Any]) -> HostRequest:
    """Build a typed request from an ``{"action": ...}`` message."""
    if not isinstance(message, Mapping):
        raise UnknownRequest("message is not an object")
    action = str(message.get("action") or "")
    session_id = str(message.get("sessionId") or message.get("session_id") or "")
    if not session_id:
        raise UnknownRequest(f"{action or 'message'} without a session id")

    if action == "scanPage":
        return ScanPageRequest(
            session_id=session_id,
            url=str(message.get("url") or ""),
            trigger=TriggerSurface.from_string(message.get("trigger") or message.get("scanSource")),
        )
    if action == "getPageContent":
        return GetPageContentRequest(session_id=session_id)
    if action == "urlChanged":
        return UrlChangedRequest(session_id=session_id, url=str(message.get("url") or ""))
    raise UnknownRequest(f"Unknown action: {action!r}")


class RequestDispatcher:
    """Routes typed requests to the pipeline."""

    def __init__(self, pipeline: ScanPipeline):
        self.pipeline = pipeline
        self.handlers: dict[type, Callable[..., Awaitable[Reply]]] = {
            ScanPageRequest: self._scan_page,
            GetPageContentRequest: self._get_page_content,
            UrlChangedRequest: self._url_changed,
        }

    async def dispatch(self, request: HostRequest, *, notices: Optional[NoticeSink] = None) -> Reply:
        handler = self.handlers.get(type(request))
        try:
            if handler is None:
                raise UnknownRequest(f"No handler for {type(request).__name__}")
            return await handler(request, notices)
        except PhishGuardError as e:
            logger.info(f"{type(request).__name__} failed: {e.code}")
            return ErrorReport(code=e.code, message=e.user_message)

    async def dispatch_message(self, message: Mapping[str, Any], *, notices: Optional[NoticeSink] = None) -> Reply:
        try:
            request = request_from_message(message)
        except UnknownRequest as e:
            logger.info(f"Rejected message: {e}")
            return ErrorReport(code=e.code, message=e.user_message)
        return await self.dispatch(request, notices=notices)

    async def _scan_page(self, request: ScanPageRequest, notices: Optional[NoticeSink]) -> Reply:
        result = await self.pipeline.scan_page(
            request.session_id,
            request.url,
            request.trigger,
            snapshot=request.snapshot,
            notices=notices,
        )
        return ScanReply(result=result, band=self.pipeline.band_for(result))

    async def _get_page_content(self, request: GetPageContentRequest, notices: Optional[NoticeSink]) -> Reply:
        snapshot = await self.pipeline.get_page_content(request.session_id, notices=notices)
        return PageContentReply(content=snapshot)

    async def _url_changed(self, request: UrlChangedRequest, notices: Optional[NoticeSink]) -> Reply:
        return NavigationReply(invalidated=self.pipeline.handle_navigation(request.session_id, request.url))
