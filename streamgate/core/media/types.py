from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping


class SourceKind(str, Enum):
    HLS = "hls"
    MP4 = "mp4"


@dataclass(frozen=True)
class VideoSource:
    """
    Playable representation of a media asset.

    `url` is always client-fetchable without holding the origin credential:
    MP4 originals on the protected origin are wrapped in the stream proxy URL,
    HLS manifests are fetched directly with the credential attached by the
    request interceptor.
    """

    kind: SourceKind
    url: str

    def as_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "url": self.url}


class ReadinessState(str, Enum):
    """Per-base-URL HLS readiness lifecycle: UNKNOWN -> PROBING -> READY | NOT_READY."""

    UNKNOWN = "unknown"
    PROBING = "probing"
    READY = "ready"
    NOT_READY = "not_ready"

    @property
    def is_terminal(self) -> bool:
        return self in (ReadinessState.READY, ReadinessState.NOT_READY)


@dataclass(frozen=True)
class OriginRequest:
    """
    Minimal request descriptor passed through request transforms.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        """
        Case-insensitive header lookup.
        """
        lname = name.lower()
        for k, v in self.headers.items():
            if k.lower() == lname:
                return v
        return None

    def with_header(self, name: str, value: str) -> "OriginRequest":
        """
        Return a clone with `name` set to `value`, replacing any existing
        header of the same name regardless of case.
        """
        lname = name.lower()
        headers = {k: v for k, v in self.headers.items() if k.lower() != lname}
        headers[name] = value
        return replace(self, headers=headers)
