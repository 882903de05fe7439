"""State of one proxied client connection."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ginx.entity import HTTPRequest, HTTPResponse, UpstreamServer


class ConnectionState(str, Enum):
    CLIENT_ACCEPTED = "client_accepted"
    REQUEST_RECEIVED = "request_received"
    CONNECTING_UPSTREAM = "connecting_upstream"
    FORWARDING_REQUEST = "forwarding_request"
    WAITING_RESPONSE = "waiting_response"
    SENDING_RESPONSE = "sending_response"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(eq=False)
class Connection:
    """A client socket paired with the upstream socket serving it."""

    client_fd: int
    client_address: str = ""
    upstream_fd: int = 0
    upstream_server: UpstreamServer | None = None
    request: HTTPRequest = field(default_factory=HTTPRequest)
    response: HTTPResponse = field(default_factory=HTTPResponse)
    state: ConnectionState = ConnectionState.CLIENT_ACCEPTED
    closed: bool = False