"""Minimal Chrome DevTools Protocol client over a single WebSocket.

This package provides:
- connect: Endpoint resolution (ws/wss, http/https discovery) with timeouts
- CDPClient: Command correlation, event subscription and session routing
- CDPSession: Commands and events scoped to one attached target
- CLI: health, nav, eval, extract, frames and endpoint subcommands
"""

from .client import CDPClient
from .endpoint import connect, connect_from_config
from .session import CDPSession, Target

__version__ = "0.1.0"

__all__ = ["CDPClient", "CDPSession", "Target", "connect", "connect_from_config"]
