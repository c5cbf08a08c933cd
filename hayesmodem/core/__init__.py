"""
Core session infrastructure.

Provides the building blocks of an emulated modem line:
- Transport: Upstream socket abstraction
- UpstreamBridge: Proxied connection with a reader thread
- ModemSession: Command/online state machine for one client
"""

from .transport import Transport, SocketTransport, MockTransport
from .bridge import UpstreamBridge, TransportFactory
from .session import ModemSession, BridgeFactory, GREETING

__all__ = [
    "Transport",
    "SocketTransport",
    "MockTransport",
    "UpstreamBridge",
    "TransportFactory",
    "ModemSession",
    "BridgeFactory",
    "GREETING",
]
