"""Request and reply types of the host messaging surface."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..analyzer.snapshot_models import PageSnapshot


class TriggerSurface(str, Enum):
    """What started a scan."""

    MANUAL = "manual"  # user pressed scan
    CONTEXT = "context"  # passive / context-menu initiated

    @classmethod
    def from_string(cls, value: Optional[str]) -> "TriggerSurface":
        if not value:
            return cls.MANUAL
        mapping = {
            "manual": cls.MANUAL,
            "popup": cls.MANUAL,
            "context": cls.CONTEXT,
            "contextmenu": cls.CONTEXT,
            "passive": cls.CONTEXT,
        }
        return mapping.get(value.strip().lower(), cls.MANUAL)


@dataclass(frozen=True)
class ScanPageRequest:
    session_id: str
    url: str
    trigger: TriggerSurface = TriggerSurface.MANUAL
    snapshot: Optional[PageSnapshot] = None


@dataclass(frozen=True)
class GetPageContentRequest:
    session_id: str


@dataclass(frozen=True)
class UrlChangedRequest:
    session_id: str
    url: str


HostRequest = Union[ScanPageRequest, GetPageContentRequest, UrlChangedRequest]


@dataclass(frozen=True)
class ErrorReport:
    """Fatal failure as shown to the user: a stable code and a short message."""

    code: str
    message: str

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message}}
