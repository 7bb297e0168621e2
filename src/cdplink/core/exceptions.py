"""Custom exceptions for cdplink."""

from typing import Any


class CDPLinkError(Exception):
    """Base exception for all cdplink errors."""


class ConnectError(CDPLinkError):
    """A session could not be opened."""


class CannotConnectError(ConnectError):
    """Browser unreachable, or no candidate address completed the handshake."""


class TargetNotFoundError(ConnectError):
    """Requested target (tab/page) not found."""


class InvalidTabError(TargetNotFoundError):
    """Tab index does not exist in the target list."""


class SessionError(CDPLinkError):
    """An operation on an open session failed."""


class NetworkError(SessionError):
    """Sending or receiving on the channel failed. The cause is chained."""


class InvalidResponseError(SessionError):
    """A frame arrived that is not a UTF-8 JSON object."""


class NoMessageError(SessionError):
    """No frame available, or none matched before the wait timed out."""


class InvalidRequestError(SessionError):
    """Command parameters cannot be encoded as JSON. Nothing was sent."""


class RequestRejectedError(SessionError):
    """The browser answered a command with an error frame."""

    def __init__(self, frame: dict[str, Any]) -> None:
        self.frame = frame
        error = frame.get("error") or {}
        if not isinstance(error, dict):
            error = {"message": str(error)}
        self.code: int = error.get("code", -1)
        self.message: str = error.get("message", "")
        super().__init__(f"CDP error {self.code}: {self.message}")
