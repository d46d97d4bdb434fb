"""Exception types raised by the HTTP client."""

from __future__ import annotations


class SurfError(Exception):
    """Base class for errors raised by the client."""


class WebSocketUpgradeError(SurfError):
    """A request got an unexpected switch to the WebSocket protocol."""

    def __init__(self, msg: str) -> None:
        self.msg = msg
        super().__init__(
            f"{msg} received an unexpected response, switching protocols to WebSocket"
        )


class UserAgentTypeError(SurfError, TypeError):
    """A user agent of an unsupported type was given."""

    def __init__(self, msg: str) -> None:
        self.msg = msg
        super().__init__(f"unsupported user agent type: {msg}")


class Response101Error(SurfError):
    """A request got a 101 Switching Protocols response."""

    def __init__(self, msg: str) -> None:
        self.msg = msg
        super().__init__(f"{msg} received a 101 response status code")