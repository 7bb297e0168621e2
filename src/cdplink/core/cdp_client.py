"""Chrome DevTools Protocol client for cdplink.

Discovers debuggable targets over HTTP and opens sessions to them.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from cdplink.config import ClientSettings
from cdplink.core.exceptions import (
    CannotConnectError,
    InvalidTabError,
    TargetNotFoundError,
)
from cdplink.core.handshake import establish
from cdplink.core.session import CDPSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CDPTarget:
    """Represents a Chrome DevTools Protocol target (tab/page/worker)."""

    id: str
    title: str
    url: str
    target_type: str
    description: str
    websocket_url: str

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "CDPTarget":
        """Create from CDP /json response."""
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            url=data.get("url", ""),
            target_type=data.get("type", "page"),
            description=data.get("description", ""),
            websocket_url=data["webSocketDebuggerUrl"],
        )


class CDPClient:
    """Client for a browser's remote debugging endpoint.

    Holds the host and port; its job is to hand out :class:`CDPSession`
    objects for individual targets.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        settings: ClientSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        base = settings or ClientSettings()
        self.settings = base.model_copy(
            update={k: v for k, v in (("host", host), ("port", port)) if v is not None}
        )
        self.host = self.settings.host
        self.port = self.settings.port
        self._base_url = f"http://{self.host}:{self.port}"
        self._transport = transport

    def list_targets(self) -> list[CDPTarget]:
        """List all available CDP targets, in the browser's order."""
        with httpx.Client(transport=self._transport) as client:
            try:
                response = client.get(
                    f"{self._base_url}/json", timeout=self.settings.discovery_timeout
                )
                response.raise_for_status()
                data = response.json()
            except httpx.ConnectError as e:
                raise CannotConnectError(
                    f"Cannot connect to Chrome at {self._base_url}. "
                    "Is Chrome running with --remote-debugging-port?"
                ) from e
            except httpx.HTTPStatusError as e:
                raise CannotConnectError(f"CDP endpoint returned error: {e}") from e
            except httpx.HTTPError as e:
                raise CannotConnectError(f"CDP discovery failed: {e}") from e
            except ValueError as e:
                raise CannotConnectError(f"CDP endpoint returned invalid JSON: {e}") from e

        try:
            targets = [CDPTarget.from_json(item) for item in data]
        except (KeyError, TypeError) as e:
            raise CannotConnectError(f"Unexpected target list from {self._base_url}") from e
        logger.debug("Discovered %d targets at %s", len(targets), self._base_url)
        return targets

    def find_target(
        self,
        *,
        target_id: str | None = None,
        url_filter: str | None = None,
        title_filter: str | None = None,
    ) -> CDPTarget:
        """Pick one target by exact id, or a page by URL or title substring.

        Without criteria the first page is returned, falling back to the
        first target of any type.
        """
        targets = self.list_targets()
        if not targets:
            raise TargetNotFoundError("No targets available")

        pages = [t for t in targets if t.target_type == "page"]
        if target_id:
            wanted = f"id {target_id}"
            matches = [t for t in targets if t.id == target_id]
        elif url_filter:
            wanted = f"URL '{url_filter}'"
            matches = [t for t in pages if url_filter in t.url]
        elif title_filter:
            wanted = f"title '{title_filter}'"
            matches = [t for t in pages if title_filter in t.title]
        else:
            return pages[0] if pages else targets[0]

        if not matches:
            raise TargetNotFoundError(f"No target matching {wanted}")
        return matches[0]

    def connect(self, target: CDPTarget) -> CDPSession:
        """Open a session to a discovered target."""
        return establish(target.websocket_url, self.settings)

    def connect_to_tab(self, index: int) -> CDPSession:
        """Open a session to the target at ``index`` in the target list."""
        targets = self.list_targets()
        if not 0 <= index < len(targets):
            raise InvalidTabError(f"Tab {index} does not exist ({len(targets)} targets)")
        return self.connect(targets[index])

    def connect_to_target(self, target_id: str) -> CDPSession:
        """Open a session to a page target by id, without a discovery call."""
        return establish(
            f"ws://{self.host}:{self.port}/devtools/page/{target_id}", self.settings
        )


def check_cdp_connection(host: str | None = None, port: int | None = None) -> bool:
    """Check if CDP is reachable at the given host:port."""
    client = CDPClient(host=host, port=port)
    try:
        client.list_targets()
        return True
    except CannotConnectError:
        return False
