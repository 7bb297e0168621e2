"""Synchronous CDP session over one target's message channel.

The session owns the channel and the request id counter. Commands and events
share the channel; every blocking call reads frames in arrival order and
discards the ones it is not waiting for.
"""

import json
import logging
import time
from types import TracebackType
from typing import Any, Protocol

from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from websockets.exceptions import ConnectionClosed

from cdplink.config import ClientSettings
from cdplink.core.exceptions import (
    InvalidRequestError,
    InvalidResponseError,
    NetworkError,
    NoMessageError,
    RequestRejectedError,
)
from cdplink.core.messages import (
    CommandRequest,
    Frame,
    FramePredicate,
    is_event,
    is_response_to,
)

logger = logging.getLogger(__name__)


class Channel(Protocol):
    """Duplex text-frame channel, as provided by ``websockets.sync``."""

    def send(self, message: str) -> None: ...

    def recv(self, timeout: float | None = None) -> str | bytes: ...

    def close(self) -> None: ...


class CDPSession:
    """A session with one debuggable target.

    Example:
        with CDPClient().connect_to_tab(0) as session:
            session.send("Network.enable")
            event = session.wait_for_event("Network.dataReceived", timeout=10)
    """

    def __init__(self, channel: Channel, *, settings: ClientSettings | None = None) -> None:
        self._channel = channel
        self._settings = settings or ClientSettings()
        self._message_id = 1
        self._closed = False

    @property
    def next_id(self) -> int:
        """Id the next dispatched command will carry."""
        return self._message_id

    @property
    def closed(self) -> bool:
        return self._closed

    def send(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Frame:
        """Send a CDP command and wait for its response frame.

        Returns the full response frame (``{"id": ..., "result": ...}``).

        Raises:
            InvalidRequestError: ``params`` cannot be encoded as JSON. Nothing is
                sent and the id is not consumed.
            NetworkError: The command could not be written or the channel broke
                while waiting.
            RequestRejectedError: The browser answered with an error frame.
            NoMessageError: No response arrived within ``timeout``.
        """
        self._ensure_open()
        request_id = self._message_id
        try:
            wire = CommandRequest(id=request_id, method=method, params=params or {}).to_wire()
        except (ValidationError, PydanticSerializationError) as e:
            raise InvalidRequestError(f"Cannot encode {method} parameters: {e}") from e

        try:
            self._channel.send(wire)
        except (ConnectionClosed, OSError) as e:
            raise NetworkError(f"Failed to send {method} (id {request_id}): {e}") from e
        finally:
            # a partially written command may still reach the browser, never reuse its id
            self._message_id += 1

        logger.debug("Sent %s (id %d)", method, request_id)
        frame = self.wait_for(is_response_to(request_id), timeout=timeout)
        if "error" in frame:
            raise RequestRejectedError(frame)
        return frame

    def receive_one(self) -> Frame:
        """Read one frame without blocking.

        Raises:
            NoMessageError: Nothing is ready on the channel.
        """
        self._ensure_open()
        frame = self._receive(0)
        if frame is None:
            raise NoMessageError("No message available")
        return frame

    def wait_for(self, predicate: FramePredicate, timeout: float | None = None) -> Frame:
        """Read frames until one satisfies ``predicate``.

        Frames that do not match are dropped. ``timeout`` defaults to the
        session's ``wait_timeout``.

        Raises:
            NoMessageError: Nothing matched within ``timeout``.
        """
        self._ensure_open()
        budget = self._settings.wait_timeout if timeout is None else timeout
        deadline = time.monotonic() + budget

        while True:
            remaining = deadline - time.monotonic()
            frame = self._receive(max(0.0, min(remaining, self._settings.poll_interval)))
            if frame is not None:
                if predicate(frame):
                    return frame
                logger.debug("Dropping unmatched frame: %.200s", frame)
            if time.monotonic() >= deadline:
                raise NoMessageError(f"No matching message within {budget}s")

    def wait_for_event(self, event: str, timeout: float | None = None) -> Frame:
        """Wait for the next event frame named ``event``."""
        return self.wait_for(is_event(event), timeout=timeout)

    def close(self) -> None:
        """Close the channel. Best effort, bounded, never raises."""
        if self._closed:
            return
        self._closed = True

        try:
            self._channel.close()
        except Exception as e:
            logger.debug("Close frame not sent, abandoning close handshake: %s", e)
            return

        for _ in range(self._settings.close_attempts):
            try:
                self._channel.recv(timeout=0)
            except ConnectionClosed:
                break
            except TimeoutError:
                continue
            except Exception as e:
                logger.debug("Stopped draining channel: %s", e)
                break
        else:
            logger.debug("Close not acknowledged after %d reads", self._settings.close_attempts)

        logger.info("Session closed")

    def __enter__(self) -> "CDPSession":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise NetworkError("Session is closed")

    def _receive(self, timeout: float) -> Frame | None:
        """Read and decode one frame, or return None if none arrived in time."""
        try:
            raw = self._channel.recv(timeout=timeout)
        except TimeoutError:
            return None
        except (ConnectionClosed, OSError) as e:
            raise NetworkError(f"Channel failed while receiving: {e}") from e

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidResponseError("Received a frame that is not valid UTF-8") from e

        try:
            frame = json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidResponseError(f"Received a frame that is not JSON: {raw[:200]!r}") from e

        if not isinstance(frame, dict):
            raise InvalidResponseError(f"Expected a JSON object, got {type(frame).__name__}")
        return frame
