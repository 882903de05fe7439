"""HTTP messages and upstream server records."""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import SplitResult, urlsplit


@dataclass
class HTTPRequest:
    method: str = ""
    path: str = ""
    protocol: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    raw: bytes = b""


@dataclass
class HTTPResponse:
    status_code: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    raw: bytes = b""


@dataclass(frozen=True)
class UpstreamServer:
    """A backend the proxy forwards requests to."""

    url: SplitResult
    weight: int = 0

    @classmethod
    def from_url(cls, url: str, weight: int = 0) -> "UpstreamServer":
        """Parse a URL string; raises ValueError if it is malformed."""
        parts = urlsplit(url)
        parts.port  # raises ValueError for an invalid port
        return cls(parts, weight)

    @property
    def host(self) -> str:
        """Host with port, as written in the URL."""
        return self.url.netloc.rpartition("@")[2]

    @property
    def hostname(self) -> str:
        return self.url.hostname or ""

    @property
    def port(self) -> int | None:
        return self.url.port

    def __str__(self) -> str:
        return self.url.geturl()