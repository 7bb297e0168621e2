"""Core infrastructure for cdplink."""

from cdplink.core.cdp_client import CDPClient, CDPTarget, check_cdp_connection
from cdplink.core.exceptions import (
    CannotConnectError,
    CDPLinkError,
    ConnectError,
    InvalidRequestError,
    InvalidResponseError,
    InvalidTabError,
    NetworkError,
    NoMessageError,
    RequestRejectedError,
    SessionError,
    TargetNotFoundError,
)
from cdplink.core.handshake import Handshake, HandshakeState, establish, resolve_candidates
from cdplink.core.messages import CommandRequest, is_event, is_response_to
from cdplink.core.session import CDPSession

__all__ = [
    "CDPClient",
    "CDPTarget",
    "CDPSession",
    "check_cdp_connection",
    "establish",
    "resolve_candidates",
    "Handshake",
    "HandshakeState",
    "CommandRequest",
    "is_event",
    "is_response_to",
    "CDPLinkError",
    "ConnectError",
    "CannotConnectError",
    "TargetNotFoundError",
    "InvalidTabError",
    "SessionError",
    "NetworkError",
    "InvalidRequestError",
    "InvalidResponseError",
    "RequestRejectedError",
    "NoMessageError",
]
