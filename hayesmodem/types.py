"""
Data types and structures for HayesModem.

Provides type-safe representations of session state, parsed commands,
phonebook entries and bridge events.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Optional, Union

if TYPE_CHECKING:
    from .core.bridge import UpstreamBridge


class ModemState(Enum):
    """Session modes."""
    COMMAND = "command"
    DIALING = "dialing"
    CONNECTED = "connected"
    BUSY = "busy"


class SoundCue(Enum):
    """Named audio cues looked up in the ``sounds`` config section."""
    DIALTONE = "dialtone"
    BUSY = "busy"
    MODEM_NOISE = "modem_noise"
    CONNECT_SUCCESS = "connect_success"
    CONNECT_FAILED = "connect_failed"

    @staticmethod
    def tone(digit: str) -> str:
        """Cue name for a DTMF digit (e.g., "tone_5")."""
        return f"tone_{digit}"


# Intents produced by the command interpreter. One class per variant.

@dataclass(frozen=True)
class Reset:
    """ATZ / AT&F - drop any connection and return to command mode."""


@dataclass(frozen=True)
class Dial:
    """ATD - dial a number."""
    number: str


@dataclass(frozen=True)
class Hangup:
    """ATH - drop any connection."""


@dataclass(frozen=True)
class SetEcho:
    """ATE0 / ATE1."""
    enabled: bool


@dataclass(frozen=True)
class SetVerbose:
    """ATV0 / ATV1."""
    enabled: bool


@dataclass(frozen=True)
class Escape:
    """+++ - leave online mode without hanging up."""


@dataclass(frozen=True)
class GoOnline:
    """ATO - return to online mode."""


@dataclass(frozen=True)
class Unknown:
    """Acknowledged command with no execution behavior."""


Intent = Union[Reset, Dial, Hangup, SetEcho, SetVerbose, Escape, GoOnline, Unknown]


class CommandResult(NamedTuple):
    """Result of parsing one command line."""
    response: str
    intent: Optional[Intent] = None


@dataclass(frozen=True)
class PhonebookEntry:
    """A dialable number from the phonebook."""
    number: str
    route: Optional[str] = None     # "host:port"
    announce: Optional[str] = None  # sound cue or file played on answer


@dataclass(frozen=True)
class Route:
    """Upstream endpoint parsed from a phonebook route."""
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


# Events emitted by an UpstreamBridge onto its session's queue.

@dataclass(frozen=True)
class BridgeData:
    """A chunk of bytes received from the remote endpoint."""
    source: "UpstreamBridge"
    data: bytes


@dataclass(frozen=True)
class BridgeClosed:
    """The upstream connection was closed (locally or remotely)."""
    source: "UpstreamBridge"


BridgeEvent = Union[BridgeData, BridgeClosed]
