"""cdplink - synchronous Chrome DevTools Protocol client."""

from cdplink.config import ClientSettings
from cdplink.core.cdp_client import CDPClient, CDPTarget
from cdplink.core.session import CDPSession

__all__ = ["CDPClient", "CDPSession", "CDPTarget", "ClientSettings"]
__version__ = "0.1.0"
