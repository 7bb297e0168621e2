"""Wire envelope and frame matchers for the DevTools message channel."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

Frame = dict[str, Any]
FramePredicate = Callable[[Frame], bool]


class CommandRequest(BaseModel):
    """One command as written to the channel: ``{"id", "method", "params"}``."""

    id: int = Field(ge=1)
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> str:
        return self.model_dump_json()


def is_response_to(request_id: int) -> FramePredicate:
    """Match the response (result or error) correlated with ``request_id``."""

    def predicate(frame: Frame) -> bool:
        return frame.get("id") == request_id and ("result" in frame or "error" in frame)

    return predicate


def is_event(event: str) -> FramePredicate:
    """Match an event frame whose ``method`` equals ``event``."""

    def predicate(frame: Frame) -> bool:
        return frame.get("method") == event

    return predicate
