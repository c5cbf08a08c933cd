"""
HayesModem - Hayes-compatible modem emulator over TCP.
"""

from .version import __version__
from .server import ModemServer, SessionGuard
from .config import ModemConfig, load_config
from .audio import AudioPlayer, NullAudio, DialTiming
from .core import ModemSession, UpstreamBridge, SocketTransport, MockTransport
from .features import PhonebookResolver
from .parsers import CommandInterpreter, RouteParser

from .types import (
    ModemState,
    SoundCue,
    PhonebookEntry,
    Route,
    CommandResult,
    Intent,
    Reset,
    Dial,
    Hangup,
    SetEcho,
    SetVerbose,
    Escape,
    GoOnline,
    Unknown,
    BridgeData,
    BridgeClosed,
)

from .exceptions import (
    ModemError,
    ConfigError,
    RouteError,
    AudioError,
    TransportError,
    RemoteClosedError,
    ClientDisconnectedError,
)

__all__ = [
    "__version__",
    "ModemServer",
    "SessionGuard",
    "ModemConfig",
    "load_config",
    "AudioPlayer",
    "NullAudio",
    "DialTiming",
    "ModemSession",
    "UpstreamBridge",
    "SocketTransport",
    "MockTransport",
    "PhonebookResolver",
    "CommandInterpreter",
    "RouteParser",
    "ModemState",
    "SoundCue",
    "PhonebookEntry",
    "Route",
    "CommandResult",
    "Intent",
    "Reset",
    "Dial",
    "Hangup",
    "SetEcho",
    "SetVerbose",
    "Escape",
    "GoOnline",
    "Unknown",
    "BridgeData",
    "BridgeClosed",
    "ModemError",
    "ConfigError",
    "RouteError",
    "AudioError",
    "TransportError",
    "RemoteClosedError",
    "ClientDisconnectedError",
]
