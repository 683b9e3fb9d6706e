"""Error taxonomy for the PhishGuard detection pipeline.

Every error carries a stable ``code`` and a short ``user_message``. The user
message is what the presentation layer shows; ``str(exc)`` holds internal
detail and is only ever logged.
"""

from __future__ import annotations

from typing import Optional


class PhishGuardError(Exception):
    """Base class for all pipeline errors."""

    code = "internal_error"
    user_message = "Something went wrong while scanning this page."
    fatal = True

    def __init__(self, detail: str = "", *, user_message: Optional[str] = None):
        super().__init__(detail or self.user_message)
        self.detail = detail
        if user_message:
            self.user_message = user_message


class ExtractionFailed(PhishGuardError):
    """All three extraction strategies failed for a page session."""

    code = "extraction_failed"
    user_message = "Unable to read this page."


class UnscannablePage(PhishGuardError):
    """URL uses a scheme that cannot be scanned (browser internals, data URLs, ...)."""

    code = "unscannable_page"
    user_message = "Cannot scan this type of page."


class CredentialMissing(PhishGuardError):
    code = "credential_missing"
    user_message = "Please configure your Gemini API key first."


class CredentialInvalid(PhishGuardError):
    code = "credential_invalid"
    user_message = "The configured Gemini API key is not valid."


class TransportError(PhishGuardError):
    """Network failure or non-2xx response from the scoring API."""

    code = "transport_error"
    fatal = False

    def __init__(
        self,
        detail: str = "",
        *,
        status_code: Optional[int] = None,
        tier: Optional[str] = None,
    ):
        super().__init__(detail)
        self.status_code = status_code
        self.tier = tier


class EmptyReplyError(PhishGuardError):
    """Scoring API answered 2xx but produced no generated text."""

    code = "empty_reply"
    fatal = False

    def __init__(self, detail: str = "", *, tier: Optional[str] = None):
        super().__init__(detail)
        self.tier = tier


class AllTiersExhausted(PhishGuardError):
    """Every model tier from the starting one onwards failed."""

    code = "all_tiers_exhausted"
    user_message = "Scan failed. Please try again later."

    def __init__(self, detail: str = "", *, last_error: Optional[Exception] = None):
        super().__init__(detail)
        self.last_error = last_error
        if last_error is not None:
            self.__cause__ = last_error


class ParseFailed(PhishGuardError):
    """Reply did not contain a parseable JSON object. Always recovered internally."""

    code = "parse_failed"
    fatal = False


class UnknownRequest(PhishGuardError):
    code = "unknown_request"
    user_message = "Unknown request."
