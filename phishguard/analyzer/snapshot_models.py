"""Page snapshot data models."""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class ExtractionStrategy(str, Enum):
    """Extraction strategies in strict preference order."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    MINIMAL = "minimal"


@dataclass(frozen=True)
class RedirectIndicators:
    meta_refresh: bool = False
    js_redirects: int = 0
    refresh_content: Optional[str] = None


@dataclass(frozen=True)
class SignalSet:
    """Structural signals read from the page."""

    iframes: int = 0
    external_links: int = 0
    sensitive_inputs: int = 0  # password + email inputs
    https: bool = False
    has_login_form: bool = False
    popup_triggers: int = 0
    redirects: RedirectIndicators = field(default_factory=RedirectIndicators)
    hidden_elements: int = 0


@dataclass(frozen=True)
class InputDescriptor:
    type: str = ""
    name: str = ""
    required: bool = False


@dataclass(frozen=True)
class FormDescriptor:
    action: str = ""
    method: str = "get"
    inputs: tuple[InputDescriptor, ...] = ()


@dataclass(frozen=True)
class UrlInfo:
    protocol: str = ""
    hostname: str = ""
    path: str = ""
    query: str = ""
    port: str = ""
    full_url: str = ""


@dataclass(frozen=True)
class ContentFlags:
    """Lexical red flags in the visible page text."""

    urgency_terms: int = 0
    scam_phrases: int = 0
    threat_terms: int = 0
    excessive_caps: bool = False
    excessive_exclamation: bool = False
    known_misspellings: bool = False


@dataclass(frozen=True)
class PageSnapshot:
    """Normalized, immutable view of one page, produced once per scan."""

    title: str
    description: str
    body_text: str
    signals: SignalSet
    url: UrlInfo
    forms: tuple[FormDescriptor, ...] = ()
    content_flags: Optional[ContentFlags] = None
    extraction_method: ExtractionStrategy = ExtractionStrategy.PRIMARY
    language: str = ""
    captured_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["extraction_method"] = self.extraction_method.value
        return data
