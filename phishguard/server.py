"""HTTP host surface for the detection pipeline."""

from __future__ import annotations

import json
import logging
from typing import Awaitable, Callable, Optional

from aiohttp import web

from .analyzer.tiers import TierChain
from .analyzer.verdict import Band
from .errors import PhishGuardError
from .pipeline.dispatcher import RequestDispatcher, ScanReply
from .pipeline.notices import CollectingNoticeSink, notice_to_dict
from .pipeline.requests import (
    ErrorReport,
    GetPageContentRequest,
    ScanPageRequest,
    TriggerSurface,
    UrlChangedRequest,
)
from .pipeline.scanner import ScanPipeline

logger = logging.getLogger(__name__)

SessionOpener = Callable[[str], Awaitable[str]]
SessionCloser = Callable[[str], Awaitable[None]]

ERROR_STATUS = {
    "unknown_request": 400,
    "unscannable_page": 422,
    "credential_missing": 401,
    "credential_invalid": 401,
    "extraction_failed": 502,
    "all_tiers_exhausted": 502,
}


def _error_response(report: ErrorReport) -> web.Response:
    return web.json_response(report.to_dict(), status=ERROR_STATUS.get(report.code, 500))


class HostApiServer:
    """Serves scan, page-content, navigation and settings endpoints."""

    def __init__(
        self,
        host: str,
        port: int,
        pipeline: ScanPipeline,
        session_opener: Optional[SessionOpener] = None,
        session_closer: Optional[SessionCloser] = None,
    ):
        self.host = host
        self.port = port
        self.pipeline = pipeline
        self.dispatcher = RequestDispatcher(pipeline)
        self.session_opener = session_opener
        self.session_closer = session_closer
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/healthz", self._handle_health)
        app.router.add_post("/sessions", self._handle_open_session)
        app.router.add_delete("/sessions/{session_id}", self._handle_close_session)
        app.router.add_post("/scan", self._handle_scan)
        app.router.add_get("/sessions/{session_id}/content", self._handle_content)
        app.router.add_get("/sessions/{session_id}/result", self._handle_result)
        app.router.add_post("/sessions/{session_id}/navigated", self._handle_navigated)
        app.router.add_get("/config/thresholds", self._handle_get_thresholds)
        app.router.add_put("/config/thresholds", self._handle_put_thresholds)
        app.router.add_get("/config/tier", self._handle_get_tier)
        app.router.add_put("/config/tier", self._handle_put_tier)
        app.router.add_put("/config/credential", self._handle_put_credential)
        return app

    async def start(self):
        """Start the server."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Host API listening on %s:%s", self.host, self.port)

    async def stop(self):
        """Stop the server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    @staticmethod
    async def _json_body(request: web.Request) -> dict:
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return {}
        return body if isinstance(body, dict) else {}

    async def _handle_health(self, request):  # noqa: ANN001
        payload = {"status": "ok", **self.pipeline.store.stats()}
        return web.json_response(payload)

    async def _handle_open_session(self, request):  # noqa: ANN001
        if self.session_opener is None:
            return web.json_response({"error": {"code": "unsupported", "message": "Sessions are managed by the host."}}, status=501)
        body = await self._json_body(request)
        url = str(body.get("url") or "")
        if not url:
            return _error_response(ErrorReport("unknown_request", "A url is required."))
        try:
            session_id = await self.session_opener(url)
        except Exception as exc:
            logger.warning("Failed to open session for %s: %s", url, exc)
            return _error_response(ErrorReport("extraction_failed", "Unable to read this page."))
        return web.json_response({"sessionId": session_id}, status=201)

    async def _handle_scan(self, request):  # noqa: ANN001
        body = await self._json_body(request)
        session_id = str(body.get("sessionId") or "")
        if not session_id:
            return _error_response(ErrorReport("unknown_request", "A sessionId is required."))
        scan_request = ScanPageRequest(
            session_id=session_id,
            url=str(body.get("url") or ""),
            trigger=TriggerSurface.from_string(body.get("trigger")),
        )
        notices = CollectingNoticeSink()
        reply = await self.dispatcher.dispatch(scan_request, notices=notices)
        if isinstance(reply, ErrorReport):
            return _error_response(reply)
        payload = reply.to_dict()
        payload["notices"] = [notice_to_dict(n) for n in notices.notices]
        return web.json_response(payload)

    async def _handle_close_session(self, request):  # noqa: ANN001
        session_id = request.match_info["session_id"]
        if self.session_closer is not None:
            await self.session_closer(session_id)
        self.pipeline.forget_session(session_id)
        return web.Response(status=204)

    async def _handle_content(self, request):  # noqa: ANN001
        reply = await self.dispatcher.dispatch(GetPageContentRequest(request.match_info["session_id"]))
        if isinstance(reply, ErrorReport):
            return _error_response(reply)
        return web.json_response(reply.to_dict())

    async def _handle_result(self, request):  # noqa: ANN001
        result = self.pipeline.cached_result(request.match_info["session_id"])
        if result is None:
            return web.json_response({"error": {"code": "not_found", "message": "No scan result for this page."}}, status=404)
        band: Band = self.pipeline.band_for(result)
        return web.json_response(ScanReply(result=result, band=band).to_dict())

    async def _handle_navigated(self, request):  # noqa: ANN001
        body = await self._json_body(request)
        reply = await self.dispatcher.dispatch(
            UrlChangedRequest(request.match_info["session_id"], str(body.get("url") or ""))
        )
        if isinstance(reply, ErrorReport):
            return _error_response(reply)
        return web.json_response(reply.to_dict())

    async def _handle_get_thresholds(self, request):  # noqa: ANN001
        return web.json_response(self.pipeline.settings.thresholds.to_dict())

    async def _handle_put_thresholds(self, request):  # noqa: ANN001
        body = await self._json_body(request)
        if body.get("reset"):
            return web.json_response(self.pipeline.settings.reset_thresholds().to_dict())
        try:
            safe = int(body["safeThreshold"]) if "safeThreshold" in body else None
            caution = int(body["cautionThreshold"]) if "cautionThreshold" in body else None
        except (TypeError, ValueError, OverflowError):
            return _error_response(ErrorReport("unknown_request", "Thresholds must be whole numbers."))
        updated = self.pipeline.settings.update_thresholds(safe=safe, caution=caution)
        return web.json_response(updated.to_dict())

    async def _handle_put_credential(self, request):  # noqa: ANN001
        body = await self._json_body(request)
        try:
            self.pipeline.settings.set_api_key(str(body.get("apiKey") or ""))
        except PhishGuardError as exc:
            logger.info("Rejected API key update: %s", exc)
            return _error_response(ErrorReport(exc.code, exc.user_message))
        return web.json_response({"configured": True})

    @staticmethod
    def _tier_payload(chain: TierChain) -> dict:
        return {
            "defaultTier": chain.default_key,
            "tiers": [{"key": t.key, "model": t.model, "label": t.label, "rank": t.rank} for t in chain],
        }

    async def _handle_get_tier(self, request):  # noqa: ANN001
        return web.json_response(self._tier_payload(self.pipeline.settings.chain))

    async def _handle_put_tier(self, request):  # noqa: ANN001
        body = await self._json_body(request)
        try:
            chain = self.pipeline.settings.set_default_tier(str(body.get("tier") or ""))
        except ValueError as exc:
            logger.info("Rejected tier update: %s", exc)
            return _error_response(ErrorReport("unknown_request", "Unknown model tier."))
        logger.info("Default model tier set to %s", chain.default_key)
        return web.json_response(self._tier_payload(chain))
