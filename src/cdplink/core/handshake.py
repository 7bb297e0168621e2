"""Session establishment: address selection and the WebSocket upgrade.

A channel address can resolve to several endpoints (``localhost`` usually
yields both ``127.0.0.1`` and ``::1``). Candidates are tried IPv4 first and the
first one whose handshake completes wins.
"""

import logging
import socket
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from websockets.exceptions import InvalidURI, WebSocketException
from websockets.sync.client import ClientConnection
from websockets.sync.client import connect as ws_connect
from websockets.uri import parse_uri

from cdplink.config import ClientSettings
from cdplink.core.exceptions import CannotConnectError
from cdplink.core.session import CDPSession

logger = logging.getLogger(__name__)

FAMILY_PRIORITY = {socket.AF_INET: 0, socket.AF_INET6: 1}


@dataclass(frozen=True)
class Candidate:
    """One resolved network endpoint for a channel address."""

    family: socket.AddressFamily
    address: tuple[Any, ...]

    def __str__(self) -> str:
        host, port = self.address[:2]
        return f"[{host}]:{port}" if self.family == socket.AF_INET6 else f"{host}:{port}"


class HandshakeState(str, Enum):
    """Progress of the upgrade handshake on one candidate."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"


def resolve_candidates(url: str) -> list[Candidate]:
    """Resolve a ``ws://`` / ``wss://`` address into ordered candidates."""
    try:
        uri = parse_uri(url)
    except InvalidURI as e:
        raise CannotConnectError(f"Invalid channel address {url!r}: {e}") from e

    try:
        infos = socket.getaddrinfo(uri.host, uri.port, type=socket.SOCK_STREAM)
    except OSError as e:
        raise CannotConnectError(f"Cannot resolve {uri.host}:{uri.port}: {e}") from e

    candidates: list[Candidate] = []
    for family, _type, _proto, _canonname, sockaddr in infos:
        candidate = Candidate(family=family, address=tuple(sockaddr))
        if candidate not in candidates:
            candidates.append(candidate)

    # sorted() is stable: resolver order is kept within a family
    return sorted(candidates, key=lambda c: FAMILY_PRIORITY.get(c.family, len(FAMILY_PRIORITY)))


def open_transport(candidate: Candidate, timeout: float) -> socket.socket:
    """Open a TCP connection to one candidate."""
    sock = socket.socket(candidate.family, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(candidate.address)
    except OSError:
        sock.close()
        raise
    # the connection blocks in recv on its own thread; websockets times the handshake itself
    sock.settimeout(None)
    return sock


@dataclass
class Handshake:
    """Resumable upgrade handshake against a single candidate.

    Each :meth:`step` is one attempt bounded by ``settings.open_timeout``. A
    refused connection or rejected upgrade fails the candidate. A handshake
    that is still pending when its time slice runs out is *interrupted*: it
    stays ``IN_PROGRESS`` and the next step resumes it on the same candidate,
    up to ``settings.handshake_attempts`` steps.
    """

    url: str
    candidate: Candidate
    settings: ClientSettings
    state: HandshakeState = HandshakeState.NOT_STARTED
    attempts: int = 0
    error: BaseException | None = None
    connection: ClientConnection | None = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        return self.state in (HandshakeState.DONE, HandshakeState.FAILED)

    def step(self) -> HandshakeState:
        if self.finished:
            return self.state

        self.state = HandshakeState.IN_PROGRESS
        self.attempts += 1

        try:
            sock = open_transport(self.candidate, self.settings.open_timeout)
        except OSError as e:
            return self._fail(e)

        try:
            self.connection = ws_connect(
                self.url,
                sock=sock,
                open_timeout=self.settings.open_timeout,
                close_timeout=self.settings.close_timeout,
                max_size=self.settings.max_size,
                legacy=True,
            )
        except TimeoutError as e:
            sock.close()
            self.error = e
            if self.attempts >= self.settings.handshake_attempts:
                return self._fail(e)
            logger.debug(
                "Handshake with %s interrupted (attempt %d), resuming",
                self.candidate,
                self.attempts,
            )
            return self.state
        except (WebSocketException, OSError) as e:
            sock.close()
            return self._fail(e)

        self.state = HandshakeState.DONE
        return self.state

    def run(self) -> ClientConnection | None:
        """Step until the handshake is done or failed."""
        while not self.finished:
            self.step()
        return self.connection

    def _fail(self, error: BaseException) -> HandshakeState:
        self.error = error
        self.state = HandshakeState.FAILED
        logger.warning("Candidate %s abandoned: %s", self.candidate, error)
        return self.state


def establish(url: str, settings: ClientSettings | None = None) -> CDPSession:
    """Open a :class:`CDPSession` on the given channel address.

    Raises:
        CannotConnectError: The address does not resolve, or no candidate
            completed the handshake.
    """
    settings = settings or ClientSettings()
    candidates = resolve_candidates(url)
    if not candidates:
        raise CannotConnectError(f"No addresses found for {url}")

    last_error: BaseException | None = None
    for candidate in candidates:
        logger.debug("Trying %s for %s", candidate, url)
        handshake = Handshake(url=url, candidate=candidate, settings=settings)
        connection = handshake.run()
        if connection is not None:
            logger.info("Connected to %s via %s", url, candidate)
            return CDPSession(connection, settings=settings)
        last_error = handshake.error

    raise CannotConnectError(
        f"Cannot connect to {url}. Is Chrome running with --remote-debugging-port?"
    ) from last_error
