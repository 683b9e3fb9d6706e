"""Gemini scoring calls with ordered, forward-only tier fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from ..errors import AllTiersExhausted, EmptyReplyError, TransportError
from .tiers import ModelTier, TierChain

logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TEMPERATURE = 0.1
DEFAULT_MAX_OUTPUT_TOKENS = 1024
# The upstream API has no deadline of its own; bound each attempt.
DEFAULT_TIMEOUT_SECONDS = 15.0

TierChangeCallback = Callable[[ModelTier, ModelTier, Exception], None]


@dataclass(frozen=True)
class InvocationOutcome:
    text: str
    tier: ModelTier
    attempts: int


def extract_generated_text(data: Any) -> Optional[str]:
    """Return ``candidates[0].content.parts[0].text`` or None."""
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return None
    text = parts[0].get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    return text


def _remote_error_message(response) -> str:
    try:
        data = response.json()
    except Exception:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if message:
            return str(message)
    return getattr(response, "reason_phrase", "") or f"HTTP {response.status_code}"


class ModelInvoker:
    """Sends one prompt to the tier chain, advancing a scan-local cursor on failure."""

    def __init__(
        self,
        api_key: str,
        chain: Optional[TierChain] = None,
        *,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ):
        self.api_key = api_key
        self.chain = chain or TierChain()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def _request_body(self, prompt: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    async def call_tier(self, tier: ModelTier, prompt: str) -> str:
        """One attempt against one tier. Raises TransportError or EmptyReplyError."""
        url = f"{self.base_url}/models/{tier.model}:generateContent"
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, headers=headers, json=self._request_body(prompt))
        except httpx.HTTPError as e:
            raise TransportError(f"{tier.model}: {type(e).__name__}: {e}", tier=tier.key) from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"{tier.model}: HTTP {response.status_code}: {_remote_error_message(response)}",
                status_code=response.status_code,
                tier=tier.key,
            )

        try:
            data = response.json()
        except Exception as e:
            raise TransportError(
                f"{tier.model}: response body is not JSON",
                status_code=response.status_code,
                tier=tier.key,
            ) from e

        text = extract_generated_text(data)
        if text is None:
            raise EmptyReplyError(f"{tier.model}: no generated text in reply", tier=tier.key)
        return text

    async def invoke(
        self,
        prompt: str,
        *,
        start_key: Optional[str] = None,
        on_tier_change: Optional[TierChangeCallback] = None,
    ) -> InvocationOutcome:
        """Try tiers from the start tier forward, each at most once.

        Raises AllTiersExhausted (carrying the last error) when every
        remaining tier failed.
        """
        chain = self.chain.with_default(start_key) if start_key else self.chain
        tiers = chain.from_default()
        max_advances = len(tiers) - 1

        cursor = 0
        advances = 0
        last_error: Optional[Exception] = None
        while True:
            tier = tiers[cursor]
            try:
                text = await self.call_tier(tier, prompt)
                if advances:
                    logger.info(f"Scoring succeeded on fallback tier {tier.key} after {advances} advance(s)")
                return InvocationOutcome(text=text, tier=tier, attempts=advances + 1)
            except (TransportError, EmptyReplyError) as e:
                last_error = e
                logger.warning(f"Model tier {tier.key} failed: {e}")

            if advances >= max_advances:
                break
            next_tier = tiers[cursor + 1]
            if on_tier_change:
                on_tier_change(tier, next_tier, last_error)
            cursor += 1
            advances += 1

        raise AllTiersExhausted(
            f"All {len(tiers)} model tier(s) failed; last error: {last_error}",
            last_error=last_error,
        )
