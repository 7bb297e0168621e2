"""Pytest configuration for cdplink tests."""

import json
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

import pytest
from websockets.exceptions import ConnectionClosed

Responder = Callable[[dict[str, Any]], Iterable[Any]]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (require Chrome running)",
    )


class FakeChannel:
    """In-memory stand-in for a websockets.sync ClientConnection.

    ``incoming`` is consumed in order by ``recv``; dict items are JSON-encoded,
    exceptions are raised. An empty queue behaves like a quiet channel.
    ``responder`` is called with every decoded outgoing message and may return
    frames to enqueue.
    """

    def __init__(
        self,
        incoming: Iterable[Any] = (),
        *,
        responder: Responder | None = None,
        send_error: BaseException | None = None,
        close_error: BaseException | None = None,
        acknowledge_close: bool = True,
    ) -> None:
        self.incoming: deque[Any] = deque(incoming)
        self.responder = responder
        self.send_error = send_error
        self.close_error = close_error
        self.acknowledge_close = acknowledge_close
        self.sent: list[dict[str, Any]] = []
        self.recv_calls = 0
        self.close_calls = 0
        self.is_closed = False

    def push(self, *frames: Any) -> None:
        self.incoming.extend(frames)

    def send(self, message: str) -> None:
        decoded = json.loads(message)
        self.sent.append(decoded)
        if self.send_error is not None:
            raise self.send_error
        if self.responder is not None:
            self.incoming.extend(self.responder(decoded))

    def recv(self, timeout: float | None = None) -> str | bytes:
        self.recv_calls += 1
        if self.is_closed and self.acknowledge_close:
            raise ConnectionClosed(None, None)
        if not self.incoming:
            raise TimeoutError("timed out")
        item = self.incoming.popleft()
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, dict):
            return json.dumps(item)
        return item

    def close(self) -> None:
        self.close_calls += 1
        if self.close_error is not None:
            raise self.close_error
        self.is_closed = True


def echo_result(message: dict[str, Any]) -> list[dict[str, Any]]:
    """Responder answering every command with an empty result."""
    return [{"id": message["id"], "result": {}}]


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel(responder=echo_result)
