"""Domain and URL helpers."""

from __future__ import annotations

from urllib.parse import urlparse

import tldextract

# Bundled public suffix snapshot only; never fetch the list at runtime.
_extract = tldextract.TLDExtract(suffix_list_urls=())

# Hostname terms that evoke account-security actions.
SUSPICIOUS_HOST_TERMS: tuple[str, ...] = (
    "secure",
    "verify",
    "update",
    "account",
    "login",
    "signin",
)

UNSCANNABLE_PREFIXES: tuple[str, ...] = (
    "chrome://",
    "chrome-extension://",
    "about:",
    "file://",
    "data:",
    "javascript:",
    "mailto:",
    "tel:",
    "ftp://",
    "chrome-search://",
    "chrome-devtools://",
)


def hostname_of(value: str) -> str:
    """Return the bare lowercase hostname of a URL or host string ("" if malformed)."""
    raw = (value or "").strip()
    if not raw:
        return ""
    candidate = raw if "://" in raw else f"https://{raw}"
    try:
        return (urlparse(candidate).hostname or "").lower()
    except ValueError:
        return ""


def registered_domain(value: str) -> str:
    """Return the registrable domain for a host or URL (best-effort)."""
    host = hostname_of(value)
    if not host:
        return ""
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host


def is_suspicious_domain(value: str) -> bool:
    """True when the hostname contains an account-security term.

    This is a minor signal for the scoring prompt, never a verdict.
    """
    host = hostname_of(value)
    if not host:
        return False
    return any(term in host for term in SUSPICIOUS_HOST_TERMS)


def is_scannable_url(url: object) -> bool:
    """Reject browser-internal pages and non-web schemes."""
    if not url or not isinstance(url, str):
        return False
    lowered = url.strip().lower()
    return not any(lowered.startswith(prefix) for prefix in UNSCANNABLE_PREFIXES)
